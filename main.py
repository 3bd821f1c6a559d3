#!/usr/bin/env python3
"""benten - エントリーポイント"""
import argparse
import sys

from benten import Benten, __version__
from benten.utils.logger import LoggerManager


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="benten",
        description="Save media to a Backblaze B2 bucket",
    )
    parser.add_argument("-s", "--src", required=True, help="source file or folder name")
    parser.add_argument("-d", "--dist", required=True, help="destination folder name")
    parser.add_argument("-c", "--config", help="JSON configuration file")
    parser.add_argument(
        "-v", "--version", action="version", version=f"%(prog)s {__version__}",
        help="print app version",
    )
    return parser


def main(argv=None) -> int:
    """メイン関数"""
    args = build_parser().parse_args(argv)

    try:
        app = Benten(args.config)
        report = app.run(args.src, args.dist)
    except Exception as e:
        LoggerManager.get_logger().error(f"Error: {e}")
        return 1

    # continue_on_error の場合も失敗があれば終了コード1
    if report.failed:
        LoggerManager.get_logger().error(
            f"Error: {report.failed} of {len(report.results)} uploads failed"
        )
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
