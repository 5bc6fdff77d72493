# Command-line entry points: `scrape` (page bundle) and `webpage2pdf`
import argparse
import logging
import sys

import constants
from config_loader import load_config
from logger_setup import setup_logging
from models import PageRequest
from orchestrator import run_scrape, run_webpage2pdf


def _add_common_arguments(parser):
    parser.add_argument('-V', '--version', action='version', version=f"%(prog)s {constants.VERSION}")
    parser.add_argument('-c', '--config', metavar='CONFIG', help='JSON configuration file')
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    parser.add_argument('--log-file', metavar='PATH', help='Also write the log to PATH')
    parser.add_argument('--timeout', type=float, metavar='SECONDS', help='Per-request timeout in seconds')


def build_scrape_parser():
    parser = argparse.ArgumentParser(
        prog='scrape',
        description='Save a webpage as a local bundle: page.html, page.md, info.json and images/.',
    )
    parser.add_argument('url', metavar='URL', help='Page to scrape (http or https)')
    parser.add_argument('output_dir', metavar='OUTPUT_DIRECTORY', nargs='?',
                        help='Bundle directory (default: the URL host, e.g. example.com)')
    _add_common_arguments(parser)
    parser.add_argument('--markdown-engine', choices=constants.MARKDOWN_ENGINES,
                        help=f'Markdown converter (default: {constants.DEFAULT_MARKDOWN_ENGINE})')
    parser.add_argument('--max-concurrent', type=int, metavar='N',
                        help=f'Concurrent image downloads (default: {constants.DEFAULT_MAX_CONCURRENT_DOWNLOADS})')
    parser.add_argument('--run-timeout', type=float, metavar='SECONDS',
                        help='Stop starting new image downloads after SECONDS')
    return parser


def build_webpage2pdf_parser():
    parser = argparse.ArgumentParser(
        prog='webpage2pdf',
        description='Render a webpage to a single PDF file in the current directory.',
    )
    parser.add_argument('url', metavar='URL', help='Page to render (http or https)')
    parser.add_argument('-o', '--output', metavar='FILE',
                        help='PDF file to write (default: derived from the page title or URL)')
    _add_common_arguments(parser)
    parser.add_argument('--pdf-engine', help=f'pandoc PDF engine (default: {constants.DEFAULT_PDF_ENGINE})')
    return parser


def _prepare(args, overrides):
    """Loads configuration and sets up logging. Returns the config or an exit code."""
    overrides['request_timeout_seconds'] = args.timeout
    overrides['log_file'] = args.log_file
    if args.verbose:
        overrides['log_level'] = 'DEBUG'
    try:
        config = load_config(args.config, overrides=overrides)
    except (OSError, ValueError) as e:
        # Logging is not configured yet
        print(f"Error: Invalid configuration: {e}", file=sys.stderr)
        return None, constants.EXIT_UNEXPECTED
    try:
        setup_logging(config['log_file'], level=config['log_level'])
    except OSError as e:
        print(f"Error: Could not set up file logging to {config['log_file']}: {e}", file=sys.stderr)
        return None, constants.EXIT_FILESYSTEM
    return config, None


def _guarded(run):
    try:
        return run()
    except Exception as e:
        logging.error(f"Unexpected error: {e}", exc_info=True)
        return constants.EXIT_UNEXPECTED


def scrape_main(argv=None):
    args = build_scrape_parser().parse_args(argv)
    config, exit_code = _prepare(args, {
        'markdown_engine': args.markdown_engine,
        'max_concurrent_downloads': args.max_concurrent,
        'run_timeout_seconds': args.run_timeout,
    })
    if config is None:
        return exit_code
    request = PageRequest(url=args.url, output_dir=args.output_dir)
    return _guarded(lambda: run_scrape(request, config))


def webpage2pdf_main(argv=None):
    args = build_webpage2pdf_parser().parse_args(argv)
    config, exit_code = _prepare(args, {'pdf_engine': args.pdf_engine})
    if config is None:
        return exit_code
    return _guarded(lambda: run_webpage2pdf(args.url, config, output_path=args.output))


def scrape_cli():
    sys.exit(scrape_main())


def webpage2pdf_cli():
    sys.exit(webpage2pdf_main())


if __name__ == "__main__":
    scrape_cli()
