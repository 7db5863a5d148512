"""
Command line entry point.

Usage:
    deploy-verify                                  # Deploy from the current directory and verify
    deploy-verify --dir ./app --timeout 3          # Deploy from another directory
    deploy-verify --mode postdeploy                # Only check an already running stack
    deploy-verify --policy best-effort             # Keep going when build or start fails
"""

import argparse
import sys
from typing import List, Optional

from deploy_verify.core.orchestrator import FailurePolicy
from deploy_verify.core.ports import PortMode
from deploy_verify.core.registry import EndpointRegistry, validate_timeout
from deploy_verify.core.verifier import DeploymentVerifier
from deploy_verify.models.report import VerificationReport
from deploy_verify.utils.logger import setup_logging

EXIT_INTERRUPTED = 130


def positive_seconds(value: str) -> float:
    try:
        return validate_timeout(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='deploy-verify',
        description='Deploy a Docker Compose stack and verify it came up healthy'
    )
    parser.add_argument(
        '--dir',
        dest='directory',
        default=None,
        help='Directory holding the compose manifest (default: current directory)'
    )
    parser.add_argument(
        '--file', '-f',
        dest='manifest_file',
        default=None,
        help='Compose manifest file name (default: docker-compose.yaml and common variants)'
    )
    parser.add_argument(
        '--mode',
        choices=[m.value for m in PortMode],
        default=PortMode.PREFLIGHT.value,
        help='preflight deploys then verifies; postdeploy verifies a running stack (default: preflight)'
    )
    parser.add_argument(
        '--timeout',
        type=positive_seconds,
        default=None,
        help='Timeout for each health probe in seconds (default: 5)'
    )
    parser.add_argument(
        '--policy',
        choices=[p.value for p in FailurePolicy],
        default=None,
        help='What to do when build or start fails (default: fail-fast)'
    )
    parser.add_argument(
        '--image',
        default=None,
        help='Image to inspect for the metadata report (default: nginx:alpine)'
    )
    parser.add_argument(
        '--report',
        default=None,
        help='Metadata report path (default: nginx-logs.txt in the manifest directory)'
    )
    parser.add_argument(
        '--results-csv',
        default=None,
        help='Also export every check result to this CSV file'
    )
    parser.add_argument(
        '--config',
        default=None,
        help='Endpoints YAML file'
    )
    parser.add_argument(
        '--settings',
        default=None,
        help='Settings YAML file'
    )
    parser.add_argument(
        '--no-install',
        action='store_true',
        help='Do not install missing optional tools'
    )
    parser.add_argument(
        '--log-file',
        default=None,
        help='Also write logs to this file'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )
    return parser


def print_report(report: VerificationReport) -> None:
    print("\nResults Summary:")
    print("-" * 70)
    for result in report.results:
        print(f"  [{result.status.value:4}] {result.subject:28} {result.detail}")
    if report.report_path:
        print(f"\nImage metadata written to: {report.report_path}")
    print(f"\nSummary: {report.summary()}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = create_parser()
    args = parser.parse_args(argv)

    registry = EndpointRegistry(args.config, args.settings)

    log_settings = registry.get_settings().get('logging', {})
    log_level = 'DEBUG' if args.verbose else log_settings.get('level', 'INFO')
    setup_logging(level=log_level, format_str=log_settings.get('format'), log_file=args.log_file)

    verifier = DeploymentVerifier(
        directory=args.directory,
        manifest_file=args.manifest_file,
        mode=PortMode(args.mode),
        policy=FailurePolicy(args.policy) if args.policy else None,
        registry=registry,
        auto_install=not args.no_install,
        report_path=args.report,
        image=args.image,
        timeout=args.timeout,
    )

    print("=== Deployment Verification ===")
    try:
        report = verifier.run()
    except KeyboardInterrupt:
        print("\n\nOperation cancelled by user", file=sys.stderr)
        return EXIT_INTERRUPTED

    print_report(report)

    if args.results_csv:
        output_path = verifier.export_to_csv(report.results, args.results_csv)
        print(f"Results exported to: {output_path}")

    return report.exit_code


if __name__ == '__main__':
    sys.exit(main())
