"""Main module for the paperfetch command-line tool."""

import argparse
import json
import logging
import os
import re
import sys
from pathlib import Path
from typing import Optional, Dict, Any, List

import yaml

from .errors import PaperFetchError
from .metadata_fetcher import PaperInfoFetcher
from .pdf_downloader import PDFDownloader, DEFAULT_OUTPUT_TEMPLATE


ENV_VAR_PATTERN = re.compile(r'\$\{([^}]+)\}')


def setup_logging(config: Dict[str, Any] = None, verbose: bool = False) -> None:
    """Configure logging based on config file and command-line options.

    Args:
        config: Logging configuration from config.yml
        verbose: If True, set level to DEBUG regardless of config
    """
    config = config or {}

    if verbose:
        level = logging.DEBUG
    else:
        level_name = config.get('level', 'INFO').upper()
        level = getattr(logging, level_name, logging.INFO)

    log_format = config.get(
        'format',
        '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    handlers = []

    # Logs go to stderr so stdout stays parseable
    if config.get('console', True):
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(logging.Formatter(log_format))
        handlers.append(console_handler)

    log_file = config.get('file')
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setFormatter(logging.Formatter(log_format))
        handlers.append(file_handler)

    if not handlers:
        handlers.append(logging.NullHandler())

    logging.basicConfig(
        level=level,
        format=log_format,
        handlers=handlers,
        force=True
    )

    # Reduce verbosity of third-party libraries
    logging.getLogger('urllib3').setLevel(logging.WARNING)
    logging.getLogger('requests').setLevel(logging.WARNING)
    logging.getLogger('arxiv').setLevel(logging.WARNING)


def load_config(config_path: str = "config.yml") -> Dict[str, Any]:
    """Load configuration from YAML file with environment variable substitution.

    Supports ${VAR} syntax for environment variable substitution in config values.

    Args:
        config_path: Path to the config file

    Returns:
        Configuration dictionary, or empty dict if file not found
    """
    config_file = Path(config_path)
    if not config_file.exists():
        return {}

    try:
        with open(config_file, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        print(f"Warning: Failed to load config file {config_path}: {e}", file=sys.stderr)
        return {}

    return _substitute_env_vars(config)


def _substitute_env_vars(obj: Any) -> Any:
    """Recursively substitute ${VAR} patterns with environment variables."""
    if isinstance(obj, dict):
        return {k: _substitute_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_substitute_env_vars(item) for item in obj]
    elif isinstance(obj, str):
        def replace(match):
            var_name = match.group(1)
            return os.environ.get(var_name, match.group(0))
        return ENV_VAR_PATTERN.sub(replace, obj)
    return obj


def _resolved(value: Optional[str]) -> Optional[str]:
    """Treat empty values and unresolved ${VAR} placeholders as unset."""
    if not value or ENV_VAR_PATTERN.search(value):
        return None
    return value


def build_semantic_scholar_config(api_config: Dict[str, Any], api_key: str = None) -> Dict[str, Any]:
    """Merge Semantic Scholar settings; CLI key beats env var beats config file."""
    ss_cfg = api_config.get('semantic_scholar', {}) or {}
    return {
        'base_url': ss_cfg.get('base_url', 'https://api.semanticscholar.org/graph/v1'),
        'timeout': ss_cfg.get('timeout', 15),
        'api_key': (_resolved(api_key)
                    or _resolved(os.environ.get('SEMANTIC_SCHOLAR_API_KEY'))
                    or _resolved(ss_cfg.get('api_key')))
    }


def format_output(variables: Dict[str, str], output_format: str = 'json') -> str:
    """Render template variables for stdout."""
    if output_format == 'yaml':
        return yaml.safe_dump(variables, allow_unicode=True, sort_keys=False)
    return json.dumps(variables, indent=2, ensure_ascii=False)


def main(argv: List[str] = None) -> int:
    """Main entry point for the command-line interface."""
    parser = argparse.ArgumentParser(
        description="Fetch bibliographic metadata for a paper URL",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s https://arxiv.org/abs/2301.00001           # Print metadata as JSON
  %(prog)s https://aclanthology.org/2023.acl-long.1   # ACL Anthology paper
  %(prog)s URL --format yaml                          # Print metadata as YAML
  %(prog)s URL --download                             # Also download the PDF
  %(prog)s                                            # Prompt for the URL
        """
    )

    parser.add_argument(
        'url',
        nargs='?',
        help='Paper URL (prompted for when omitted)'
    )

    parser.add_argument(
        '--config',
        default='config.yml',
        help='Path to configuration file'
    )

    parser.add_argument(
        '--api-key',
        help='Semantic Scholar API key (overrides SEMANTIC_SCHOLAR_API_KEY and config)'
    )

    parser.add_argument(
        '--download',
        action='store_true',
        help='Download the paper PDF after fetching metadata'
    )

    parser.add_argument(
        '--output-template',
        help=f'Templated output path for the PDF (default: {DEFAULT_OUTPUT_TEMPLATE})'
    )

    parser.add_argument(
        '--format',
        choices=['json', 'yaml'],
        default='json',
        help='Output format for the metadata (default: json)'
    )

    parser.add_argument(
        '-v', '--verbose',
        action='store_true',
        help='Enable verbose (debug) logging'
    )

    args = parser.parse_args(argv)

    config = load_config(args.config)
    api_config = config.get('api', {}) or {}
    download_config = config.get('download', {}) or {}
    setup_logging(config.get('logging', {}), verbose=args.verbose)

    url = args.url
    if not url:
        try:
            # Prompt on stderr so stdout holds only the metadata
            print("Paper URL: ", end="", file=sys.stderr, flush=True)
            url = input().strip()
        except (EOFError, KeyboardInterrupt):
            url = ""
    if not url:
        return 0

    fetcher = PaperInfoFetcher(
        arxiv_config=api_config.get('arxiv'),
        acl_anthology_config=api_config.get('acl_anthology'),
        semantic_scholar_config=build_semantic_scholar_config(api_config, args.api_key)
    )

    try:
        variables = fetcher.fetch_paper_info(url)

        if args.download:
            output_template = (args.output_template
                               or download_config.get('output_template', DEFAULT_OUTPUT_TEMPLATE))
            downloader = PDFDownloader(timeout=download_config.get('timeout', 60))
            variables['downloadedPdfPath'] = downloader.download(variables, output_template)

    except PaperFetchError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        print("\nOperation cancelled by user", file=sys.stderr)
        return 1

    print(format_output(variables, args.format))
    return 0


if __name__ == '__main__':
    sys.exit(main())
