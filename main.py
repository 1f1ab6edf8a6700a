"""
Entry point for the WordPress WXR importer.
"""

import argparse
import json
import sys

from wxr_importer import Failure, WXRImporter
from wxr_importer.config import load_config
from wxr_importer.state import CONTENT_KINDS
from wxr_importer.stores import DuckDBContentStore
from wxr_importer.utils import generate_mapping_csv

CONFIG_FILE = "config/import_config.json"


def build_parser():
    parser = argparse.ArgumentParser(description="Import a WordPress WXR export into a DuckDB content store.")
    parser.add_argument("--config", default=CONFIG_FILE, help="JSON configuration file")
    sub = parser.add_subparsers(dest="command", required=True)

    detect = sub.add_parser("detect", help="Report which kinds of content the export contains")
    detect.add_argument("file")

    run = sub.add_parser("import", help="Import the export into the store")
    run.add_argument("file")
    run.add_argument(
        "--only",
        action="append",
        choices=CONTENT_KINDS,
        metavar="KIND",
        help=f"Import only this kind (repeatable): {', '.join(CONTENT_KINDS)}",
    )
    run.add_argument("--with-users", action="store_true", help="Also import authors")
    run.add_argument("--mapping-csv", help="Write the original/new post mapping to this CSV")
    run.add_argument("--new-base-url", default="", help="Base URL used for NewURL in the mapping CSV")
    return parser


def main(argv=None):
    """
    Main function to run the WXR importer from the command line.
    """
    args = build_parser().parse_args(argv)

    config = load_config(config_file=args.config)
    # The store only connects on import; detection never touches it
    store = DuckDBContentStore.from_config(config)
    importer = WXRImporter(store, config)
    store.logger = importer.logger

    if args.command == "detect":
        found = importer.detect_contents(args.file)
        if isinstance(found, Failure):
            return 1
        print(json.dumps(found.as_dict(), indent=2))
        return 0

    if args.only:
        options = {kind: True for kind in args.only}
        if args.with_users:
            options["users"] = True
    elif args.with_users:
        options = {kind: True for kind in CONTENT_KINDS}
    else:
        options = {}

    try:
        imported = importer.import_file(args.file, options)
        if imported and args.mapping_csv:
            path = generate_mapping_csv(store.post_mapping(), new_base=args.new_base_url, out_path=args.mapping_csv)
            importer.logger.info(f"Post mapping written to {path}")
    finally:
        store.close()
    return 0 if imported else 1


if __name__ == "__main__":
    sys.exit(main())
