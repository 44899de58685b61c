"""
VIN Scan Command Line Interface
===============================

Usage:
    vin-scan validate 1HGCM82633A004352
    vin-scan --json decode 1HGCM82633A004352
    vin-scan extract "VIN: 1HGCM82633A004352"
    echo "VIN 1HGCM82633A004352" | vin-scan extract -
    vin-scan -v scan frame1.jpg frame2.jpg frame3.jpg
    vin-scan --config scan.yaml --json scan frame.jpg --phase 2
"""

import argparse
import json
import logging
import sys
import time
from dataclasses import replace
from pathlib import Path
from typing import List, Optional

from . import __version__
from .config import ScanConfig, setup_logging
from .core import decode_vin, extract_vin, validate_vin
from .core.context import adjust_for_context, generate_user_feedback
from .exceptions import PipelineError

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='vin-scan',
        description='VIN Scan - Recognize and stabilize VINs from camera frames',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    vin-scan validate "SAL1P9EU2SA606664"
    vin-scan --json decode "1HGCM82633A004352"
    vin-scan extract "VIN: 1HGCM82633A004352"
    vin-scan -v scan frame1.jpg frame2.jpg --phase 1
        """
    )
    parser.add_argument('--version', action='version', version=f'VIN Scan {__version__}')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Verbose output')
    parser.add_argument('--json', action='store_true',
                        help='Output as JSON')
    parser.add_argument('--config', metavar='PATH',
                        help='Load configuration from a JSON or YAML file')

    sub = parser.add_subparsers(dest='command', required=True)

    p_validate = sub.add_parser('validate', help='Validate a VIN string')
    p_validate.add_argument('vin')

    p_decode = sub.add_parser('decode', help='Decode a VIN string structure')
    p_decode.add_argument('vin')

    p_extract = sub.add_parser('extract', help="Extract a VIN from recognized text ('-' reads stdin)")
    p_extract.add_argument('text')
    p_extract.add_argument('--no-filter', action='store_true',
                           help='Disable the non-VIN text filter')

    p_scan = sub.add_parser('scan', help='Scan one or more image frames in sequence')
    p_scan.add_argument('images', nargs='+', metavar='IMAGE')
    p_scan.add_argument('--text-backend', default='paddleocr',
                        help='Text recognition backend (default: paddleocr)')
    p_scan.add_argument('--barcode-backend', default='zbar',
                        help='Barcode backend (default: zbar)')
    p_scan.add_argument('--no-text', action='store_true', help='Disable text recognition')
    p_scan.add_argument('--no-barcode', action='store_true', help='Disable barcode scanning')
    p_scan.add_argument('--phase', type=int, choices=[1, 2, 3],
                        help='Enable the feature flags of a rollout phase')

    return parser


def _load_config(args: argparse.Namespace) -> ScanConfig:
    config = ScanConfig.load(Path(args.config)) if args.config else ScanConfig()
    if args.verbose:
        config.logging.level = 'DEBUG'
    return config


def _cmd_validate(args: argparse.Namespace) -> int:
    result = validate_vin(args.vin)
    if args.json:
        print(json.dumps(result.to_dict(), indent=2))
    else:
        status = "VALID" if result.is_valid else "INVALID"
        print(f"VIN: {result.vin} - {status}")
        if result.failure_reason:
            print(f"  Reason: {result.failure_reason}")
        else:
            print(f"  Manufacturer: {result.manufacturer or 'Unknown'}")
            print(f"  Checksum: {'OK' if result.checksum_valid else 'MISMATCH'}")
    return 0 if result.is_valid else 1


def _cmd_decode(args: argparse.Namespace) -> int:
    result = decode_vin(args.vin)
    if args.json:
        print(json.dumps(result, indent=2))
        return 1 if 'error' in result else 0

    if 'error' in result:
        print(f"Error: {result['error']}")
        return 1
    print(f"VIN: {result['vin']}")
    print(f"  WMI (Manufacturer): {result['wmi']} ({result['manufacturer'] or 'Unknown'})")
    print(f"  VDS (Descriptor): {result['vds']}")
    print(f"  Check Digit: {result['check_digit']} ({'OK' if result['checksum_valid'] else 'MISMATCH'})")
    print(f"  Model Year: {result['model_year_display']}")
    print(f"  Plant Code: {result['plant_code']}")
    print(f"  Sequential: {result['sequential']}")
    return 0


def _cmd_extract(args: argparse.Namespace, config: ScanConfig) -> int:
    text = sys.stdin.read() if args.text == '-' else args.text
    context_aware = config.flags.context_aware_detection and not args.no_filter
    outcome = extract_vin(
        text,
        context_aware=context_aware,
        min_confidence=config.candidate_min_confidence,
        context_min_confidence=config.context_min_confidence,
    )

    payload = outcome.to_dict()
    if outcome.match:
        context = adjust_for_context(outcome.match.vin, outcome.match.confidence)
        payload['context'] = context.to_dict()
        payload['feedback'] = generate_user_feedback(context).to_dict()

    if args.json:
        print(json.dumps(payload, indent=2))
    elif outcome.match:
        print(f"VIN: {outcome.match.vin}")
        print(f"Confidence: {outcome.match.confidence:.2%}")
        print(f"Method: {outcome.match.method}")
        print(f"Feedback: {payload['feedback']['message']}")
    else:
        print(f"No VIN found ({outcome.status.value})")
    return 0 if outcome.match else 1


def _cmd_scan(args: argparse.Namespace, config: ScanConfig) -> int:
    from .pipeline.engine import VINScanEngine
    from .recognition.factory import RecognizerFactory

    flags = config.flags
    if args.phase:
        flags = flags.with_phase(args.phase)
    if args.no_text:
        flags = replace(flags, text_recognition=False)
    if args.no_barcode:
        flags = replace(flags, barcode_scanning=False)
    config.flags = flags

    engine = VINScanEngine(
        text_recognizer=None if args.no_text else RecognizerFactory.create_text(args.text_backend),
        barcode_scanner=None if args.no_barcode else RecognizerFactory.create_barcode(args.barcode_backend),
        config=config,
    )

    state = engine.new_state()
    outcome = None
    reports = []
    for image in args.images:
        # Frames are fed at the scheduler's pace, as a camera would
        wait_ms = engine.time_until_next_scan_ms(state)
        if wait_ms > 0:
            logger.debug(f"Waiting {wait_ms:.0f}ms for scan interval")
            time.sleep(wait_ms / 1000)

        outcome = engine.scan_frame_sync(image, state)
        state = outcome.state
        reports.append({'image': image, **outcome.to_dict()})

        if not args.json:
            label = outcome.vin or '-'
            print(f"{image}: {outcome.status.value} {label} ({outcome.confidence:.2%})")

    if args.json:
        print(json.dumps(reports, indent=2))
    elif outcome and outcome.consensus and outcome.consensus.reached:
        print(f"\nConsensus: {outcome.consensus.vin} "
              f"({outcome.consensus.confidence:.2%}, stability {outcome.consensus.stability:.0%})")

    return 0 if outcome and outcome.success else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config = _load_config(args)
    except PipelineError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.logging)

    try:
        if args.command == 'validate':
            return _cmd_validate(args)
        if args.command == 'decode':
            return _cmd_decode(args)
        if args.command == 'extract':
            return _cmd_extract(args, config)
        return _cmd_scan(args, config)
    except PipelineError as e:
        if args.json:
            print(json.dumps(e.to_dict(), indent=2))
        else:
            print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
