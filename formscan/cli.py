"""
Command line entry point.

Examples:
  formscan provision --location eastus --environment-name formscan-dev
  formscan rasterize claim.pdf
  formscan extract claim_composite.jpg --schema claim_schema.json
  formscan run claim.pdf
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .errors import ExtractionHTTPError, FormscanError
from .logging_setup import setup_logging
from .services.config_store import load_service_config
from .services.llm_client import DEFAULT_MODEL, ExtractionClient
from .services.orchestrator import run_pipeline
from .services.pdf_render import rasterize_pdf
from .services.prompts import load_schema_text
from .services.provisioner import Provisioner

INFRA_DIR = Path("infra")


def positive_int(value: str) -> int:
    n = int(value)
    if n <= 0:
        raise argparse.ArgumentTypeError(f"must be a positive integer, got {value}")
    return n


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="formscan",
        description="Extract structured data from scanned PDF forms with a hosted vision model",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument('--verbose', '-v', action='store_true', help='Enable debug logging')
    sub = parser.add_subparsers(dest='command', required=True)

    p = sub.add_parser('provision', help='Deploy the Azure resources and write the settings file')
    p.add_argument('--location', required=True, help='Azure region, e.g. eastus')
    p.add_argument('--environment-name', required=True, help='Prefix for the resource group and account')
    p.add_argument('--template', default=str(INFRA_DIR / 'main.bicep'), help='Deployment template')
    p.add_argument('--parameters', default=str(INFRA_DIR / 'main.parameters.json'), help='Template parameters file')
    p.add_argument('--deployment-name', help='Name of the subscription deployment')
    p.add_argument('--env-file', default='.env', help='Settings file to update')

    p = sub.add_parser('rasterize', help='Render a PDF into one stacked JPEG')
    p.add_argument('pdf', help='Input PDF path')
    p.add_argument('--output', '-o', help='Output image path (default: <name>_composite.jpg)')
    p.add_argument('--dpi', type=positive_int, help='Render resolution (default: PyMuPDF default)')

    def add_extract_options(sp: argparse.ArgumentParser) -> None:
        sp.add_argument('--env-file', default='.env', help='Settings file written by provision')
        sp.add_argument('--schema', help='JSON file with the example output shape')
        sp.add_argument('--model', default=DEFAULT_MODEL, help='Model identifier sent in the request body')
        sp.add_argument('--timeout', type=float, help='HTTP timeout in seconds')

    p = sub.add_parser('extract', help='Send a composite image to the model and print its answer')
    p.add_argument('image', help='Composite JPEG path')
    add_extract_options(p)

    p = sub.add_parser('run', help='Rasterize a PDF and extract it in one go')
    p.add_argument('pdf', help='Input PDF path')
    p.add_argument('--output', '-o', help='Output image path (default: <name>_composite.jpg)')
    p.add_argument('--dpi', type=positive_int, help='Render resolution (default: PyMuPDF default)')
    add_extract_options(p)

    return parser


def cmd_provision(args: argparse.Namespace) -> int:
    prov = Provisioner(args.template, args.parameters)
    result = prov.deploy(args.location, args.environment_name, deployment_name=args.deployment_name)
    path = prov.write_config(result, args.env_file)
    print(f"Wrote settings for {result.deployment_name} ({result.endpoint}) to {path}")
    return 0


def cmd_rasterize(args: argparse.Namespace) -> int:
    meta = rasterize_pdf(args.pdf, args.output, dpi=args.dpi)
    print(meta.path)
    return 0


def _client(args: argparse.Namespace) -> ExtractionClient:
    config = load_service_config(args.env_file)
    return ExtractionClient(config, model=args.model, timeout=args.timeout)


def cmd_extract(args: argparse.Namespace) -> int:
    schema_text = load_schema_text(args.schema)
    with _client(args) as client:
        content = client.extract(args.image, schema_text)
    print(content)
    return 0


def cmd_run(args: argparse.Namespace) -> int:
    schema_text = load_schema_text(args.schema)
    with _client(args) as client:
        result = run_pipeline(
            args.pdf, client.config,
            schema_text=schema_text, client=client, output_path=args.output, dpi=args.dpi,
        )
    print(result.content)
    return 0


COMMANDS = {
    'provision': cmd_provision,
    'rasterize': cmd_rasterize,
    'extract': cmd_extract,
    'run': cmd_run,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    log = setup_logging(args.verbose)
    try:
        return COMMANDS[args.command](args)
    except ExtractionHTTPError as e:
        # raw response object, not its body
        print(e.response)
        log.error(f"[cli] {e}")
        return 1
    except FormscanError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
