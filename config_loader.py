# Module for loading and validating configuration
import json
import logging
import constants # Import constants


def default_config():
    """Returns a fresh configuration dictionary populated from constants."""
    return {
        'user_agent': constants.DEFAULT_USER_AGENT,
        'request_timeout_seconds': constants.DEFAULT_TIMEOUT,
        'max_retries': constants.DEFAULT_MAX_RETRIES,
        'request_delay_seconds': constants.DEFAULT_REQUEST_DELAY,
        'max_concurrent_downloads': constants.DEFAULT_MAX_CONCURRENT_DOWNLOADS,
        'run_timeout_seconds': constants.DEFAULT_RUN_TIMEOUT,
        'markdown_engine': constants.DEFAULT_MARKDOWN_ENGINE,
        'pandoc_markdown_format': constants.DEFAULT_PANDOC_MARKDOWN_FORMAT,
        'pdf_engine': constants.DEFAULT_PDF_ENGINE,
        'log_file': constants.DEFAULT_LOG_FILE,
        'log_level': constants.DEFAULT_LOG_LEVEL,
    }


def load_config(config_path=None, overrides=None):
    """
    Builds the run configuration: defaults, then the optional JSON file,
    then command-line overrides (keys whose value is None are ignored).
    Raises FileNotFoundError for a missing explicit file and ValueError for
    invalid JSON or invalid values.
    """
    config = default_config()

    if config_path:
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                file_config = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Error decoding JSON from config file '{config_path}': {e}") from e

        if not isinstance(file_config, dict):
            raise ValueError(f"Config file '{config_path}' must contain a JSON object.")

        unknown_keys = sorted(set(file_config) - set(config))
        if unknown_keys:
            # Logging may not be configured yet; the warning is still captured once it is
            logging.getLogger(__name__).warning(
                f"Ignoring unknown config keys in '{config_path}': {', '.join(unknown_keys)}"
            )
        config.update({k: v for k, v in file_config.items() if k in config})

    if overrides:
        config.update({k: v for k, v in overrides.items() if v is not None})

    _validate(config)
    return config


def _validate(config):
    # bool is a subclass of int, so it is rejected explicitly
    def is_number(value):
        return isinstance(value, (int, float)) and not isinstance(value, bool)

    if not isinstance(config['user_agent'], str) or not config['user_agent'].strip():
        raise ValueError("Config 'user_agent' must be a non-empty string.")
    if not is_number(config['request_timeout_seconds']) or config['request_timeout_seconds'] <= 0:
        raise ValueError("Config 'request_timeout_seconds' must be a positive number.")
    if not isinstance(config['max_retries'], int) or isinstance(config['max_retries'], bool) or config['max_retries'] < 0:
        raise ValueError("Config 'max_retries' must be a non-negative integer.")
    if not is_number(config['request_delay_seconds']) or config['request_delay_seconds'] < 0:
        raise ValueError("Config 'request_delay_seconds' must be a non-negative number.")
    workers = config['max_concurrent_downloads']
    if not isinstance(workers, int) or isinstance(workers, bool) or workers < 1:
        raise ValueError("Config 'max_concurrent_downloads' must be a positive integer.")
    run_timeout = config['run_timeout_seconds']
    if run_timeout is not None and (not is_number(run_timeout) or run_timeout <= 0):
        raise ValueError("Config 'run_timeout_seconds' must be a positive number or null.")
    if config['markdown_engine'] not in constants.MARKDOWN_ENGINES:
        raise ValueError(
            f"Config 'markdown_engine' must be one of: {', '.join(constants.MARKDOWN_ENGINES)}."
        )
    for key in ('pandoc_markdown_format', 'pdf_engine'):
        if not isinstance(config[key], str) or not config[key]:
            raise ValueError(f"Config '{key}' must be a non-empty string.")
    if config['log_file'] is not None and not isinstance(config['log_file'], str):
        raise ValueError("Config 'log_file' must be a path string or null.")
    level = config['log_level']
    if not isinstance(level, str) or not isinstance(logging.getLevelName(level.upper()), int):
        raise ValueError(f"Config 'log_level' is not a valid logging level: {level!r}")
    config['log_level'] = level.upper()
