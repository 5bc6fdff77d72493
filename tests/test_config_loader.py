import pytest
import json

import config_loader
import constants


def test_load_config_defaults_without_file():
    config = config_loader.load_config()

    assert config['user_agent'] == constants.DEFAULT_USER_AGENT
    assert config['request_timeout_seconds'] == constants.DEFAULT_TIMEOUT
    assert config['max_retries'] == constants.DEFAULT_MAX_RETRIES
    assert config['request_delay_seconds'] == constants.DEFAULT_REQUEST_DELAY
    assert config['max_concurrent_downloads'] == 8
    assert config['run_timeout_seconds'] is None
    assert config['markdown_engine'] == 'pandoc'
    assert config['pandoc_markdown_format'] == 'gfm-raw_html'
    assert config['pdf_engine'] == 'wkhtmltopdf'
    assert config['log_file'] is None
    assert config['log_level'] == 'INFO'


def test_load_config_valid(tmp_path):
    """Tests loading a valid configuration file."""
    valid_config_data = {
        "user_agent": "TestAgent/1.0",
        "request_timeout_seconds": 12.5,
        "max_retries": 5,
        "request_delay_seconds": 0,
        "max_concurrent_downloads": 3,
        "run_timeout_seconds": 120,
        "markdown_engine": "html2text",
        "pandoc_markdown_format": "commonmark",
        "pdf_engine": "weasyprint",
        "log_file": "logs/scrape.log",
        "log_level": "DEBUG",
    }
    config_file = tmp_path / "valid_config.json"
    config_file.write_text(json.dumps(valid_config_data))

    loaded_config = config_loader.load_config(str(config_file))

    assert loaded_config == valid_config_data


def test_load_config_partial_file_keeps_defaults(tmp_path):
    config_file = tmp_path / "partial.json"
    config_file.write_text(json.dumps({"max_retries": 0}))

    loaded_config = config_loader.load_config(str(config_file))

    assert loaded_config['max_retries'] == 0
    assert loaded_config['user_agent'] == constants.DEFAULT_USER_AGENT


def test_overrides_win_and_none_is_ignored(tmp_path):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"max_concurrent_downloads": 4, "request_timeout_seconds": 10}))

    loaded_config = config_loader.load_config(
        str(config_file),
        overrides={"max_concurrent_downloads": 2, "request_timeout_seconds": None, "log_level": "warning"},
    )

    assert loaded_config['max_concurrent_downloads'] == 2
    assert loaded_config['request_timeout_seconds'] == 10
    assert loaded_config['log_level'] == 'WARNING'


def test_unknown_keys_are_ignored_with_warning(tmp_path, caplog):
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({"target_domain": "example.com", "max_retries": 1}))

    loaded_config = config_loader.load_config(str(config_file))

    assert 'target_domain' not in loaded_config
    assert loaded_config['max_retries'] == 1
    assert "Ignoring unknown config keys" in caplog.text


def test_load_config_file_not_found():
    with pytest.raises(FileNotFoundError):
        config_loader.load_config("non_existent_config.json")


def test_load_config_invalid_json(tmp_path):
    config_file = tmp_path / "invalid_json.json"
    config_file.write_text('{"max_retries": 3, ...')

    with pytest.raises(ValueError) as e:
        config_loader.load_config(str(config_file))

    assert "Error decoding JSON" in str(e.value)


def test_load_config_not_an_object(tmp_path):
    config_file = tmp_path / "list.json"
    config_file.write_text('["max_retries"]')

    with pytest.raises(ValueError) as e:
        config_loader.load_config(str(config_file))

    assert "must contain a JSON object" in str(e.value)


@pytest.mark.parametrize("key, value, message", [
    ("max_retries", -1, "max_retries"),
    ("max_retries", 1.5, "max_retries"),
    ("max_retries", True, "max_retries"),
    ("request_timeout_seconds", 0, "request_timeout_seconds"),
    ("request_timeout_seconds", "30", "request_timeout_seconds"),
    ("request_delay_seconds", -0.5, "request_delay_seconds"),
    ("max_concurrent_downloads", 0, "max_concurrent_downloads"),
    ("run_timeout_seconds", -10, "run_timeout_seconds"),
    ("markdown_engine", "pdfkit", "markdown_engine"),
    ("pdf_engine", "", "pdf_engine"),
    ("user_agent", " ", "user_agent"),
    ("log_file", 42, "log_file"),
    ("log_level", "LOUD", "log_level"),
])
def test_load_config_invalid_values(tmp_path, key, value, message):
    config_file = tmp_path / "bad.json"
    config_file.write_text(json.dumps({key: value}))

    with pytest.raises(ValueError) as e:
        config_loader.load_config(str(config_file))

    assert message in str(e.value)
