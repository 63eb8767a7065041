import config


def test_env_int_reads_value(monkeypatch):
    monkeypatch.setenv('PORT', '8080')
    assert config._env_int('PORT', 3000) == 8080


def test_env_int_invalid_falls_back(monkeypatch, caplog):
    monkeypatch.setenv('INFO_TIMEOUT', 'two minutes')
    assert config._env_int('INFO_TIMEOUT', 120) == 120
    assert 'INFO_TIMEOUT' in caplog.text


def test_env_int_blank_uses_default(monkeypatch):
    monkeypatch.setenv('MAX_HEIGHT_OPTIONS', '  ')
    assert config._env_int('MAX_HEIGHT_OPTIONS', 5) == 5


def test_log_level_normalised(monkeypatch):
    monkeypatch.setenv('LOG_LEVEL', 'debug')
    assert config._env_log_level('LOG_LEVEL') == 'DEBUG'


def test_unknown_log_level_falls_back(monkeypatch, caplog):
    monkeypatch.setenv('LOG_LEVEL', 'LOUD')
    assert config._env_log_level('LOG_LEVEL') == 'INFO'
    assert 'LOG_LEVEL' in caplog.text
