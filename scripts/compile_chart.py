#!/usr/bin/env python3
"""
compile_chart.py: Compile .lzm chart files and report diagnostics

Usage:
    python scripts/compile_chart.py <chart.lzm> [<chart.lzm> ...]
    python scripts/compile_chart.py --json charts/tutorial.lzm
    python scripts/compile_chart.py --verbose charts/

Flags:
    --json      Output the compiled chart(s) as JSON
    --verbose   Also show compiler log output at DEBUG level
"""

import argparse
import json
import sys
from pathlib import Path
from typing import List

from loguru import logger

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from lzm_compiler.config import CHART_EXTENSIONS, LOG_LEVEL  # noqa: E402
from lzm_compiler.models import Chart  # noqa: E402
from lzm_compiler.services.compiler import compile_chart_file  # noqa: E402
from lzm_compiler.services.serialize import chart_to_json  # noqa: E402


def _collect_targets(paths: List[str]) -> List[Path]:
    targets: List[Path] = []
    for target in paths:
        target_path = Path(target)
        if target_path.is_dir():
            targets.extend(
                sorted(p for p in target_path.iterdir() if p.suffix.lower() in CHART_EXTENSIONS)
            )
        elif target_path.is_file():
            targets.append(target_path)
        else:
            print(f"❌ Not a valid target: {target}")
    return targets


def main() -> int:
    parser = argparse.ArgumentParser(
        description="Compile .lzm chart files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )
    parser.add_argument("path", nargs="+", help="Chart file(s) or directories of charts")
    parser.add_argument("--verbose", "-v", action="store_true", help="Show DEBUG logging")
    parser.add_argument("--json", action="store_true", help="Output compiled charts as JSON")
    args = parser.parse_args()

    logger.remove()
    logger.add(
        sys.stderr,
        level="DEBUG" if args.verbose else LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>",
        colorize=True,
    )

    results: List[tuple[Path, Chart]] = []
    for chart_path in _collect_targets(args.path):
        results.append((chart_path, compile_chart_file(chart_path)))

    if args.json:
        output = [chart_to_json(chart) for _, chart in results]
        print(json.dumps(output, indent=2))
    else:
        for chart_path, chart in results:
            status = "✅ COMPILED" if chart.ok else "❌ FAILED"
            summary = chart.summary()
            print()
            print("=" * 60)
            print(f"{status}: {chart_path}")
            print(
                f"  {summary['measures']} measure(s), {summary['platforms']} platform(s), "
                f"{summary['notes']} note(s), {summary['animations']} animation(s)"
            )
            print("-" * 60)
            for diagnostic in chart.diagnostics:
                print(f"  {diagnostic}")
            print()

    if any(not chart.ok for _, chart in results):
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
