import argparse
import logging
import os
import sys
from pathlib import Path

from dotenv import load_dotenv
from tqdm import tqdm

from .config import load_storage_config
from .context import Context
from .storage import new_storager
from .storage.errors import InitError, StorageError

logger = logging.getLogger(__name__)


def configure_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler("drivepath.log"),
            logging.StreamHandler(sys.stderr)
        ]
    )
    logging.getLogger('urllib3').setLevel(logging.WARNING)


def build_parser():
    parser = argparse.ArgumentParser(prog="drivepath", description="Path based access to Google Drive.")
    parser.add_argument("--config", help="Path to a YAML config file with a `storage:` section.")
    parser.add_argument("--work-dir", help="Working directory all paths are relative to.")
    parser.add_argument("--credential", help="apikey:<key> or token:<access token>.")
    parser.add_argument("--timeout", type=float, help="Give up on the whole command after this many seconds.")
    parser.add_argument("-v", "--verbose", action="store_true")

    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("ls", help="List a directory.").add_argument("path", nargs="?", default="")
    sub.add_parser("stat", help="Describe a file or directory.").add_argument("path")
    sub.add_parser("cat", help="Print a file to stdout.").add_argument("path")
    sub.add_parser("rm", help="Delete a file or directory.").add_argument("path")
    sub.add_parser("mkdir", help="Create a directory and its parents.").add_argument("path")

    get = sub.add_parser("get", help="Download a file.")
    get.add_argument("path")
    get.add_argument("dest")

    put = sub.add_parser("put", help="Upload a file, creating parent directories.")
    put.add_argument("src")
    put.add_argument("path")
    return parser


def run(store, args, ctx=None, out=None):
    out = out or sys.stdout

    if args.command == "ls":
        for item in store.list_files(args.path, ctx=ctx):
            kind = "d" if item.is_dir else "-"
            size = "" if item.size is None else item.size
            print(f"{kind} {size:>12} {item.path}", file=out)

    elif args.command == "stat":
        item = store.stat(args.path, ctx=ctx)
        print(f"name: {item.name}", file=out)
        print(f"id:   {item.id}", file=out)
        print(f"mode: {'dir' if item.is_dir else 'read'}", file=out)
        if item.size is not None:
            print(f"size: {item.size}", file=out)

    elif args.command == "cat":
        store.read(args.path, out.buffer if hasattr(out, "buffer") else out, ctx=ctx)

    elif args.command == "get":
        size = store.stat(args.path, ctx=ctx).size
        with open(args.dest, "wb") as f, tqdm(total=size, unit="B", unit_scale=True, desc=args.path) as pbar:
            store.read(args.path, f, ctx=ctx, io_callback=pbar.update)

    elif args.command == "put":
        src = Path(args.src)
        size = src.stat().st_size
        with open(src, "rb") as f, tqdm(total=size, unit="B", unit_scale=True, desc=src.name) as pbar:
            store.write(args.path, f, size, ctx=ctx, io_callback=pbar.update)

    elif args.command == "rm":
        store.delete_file(args.path, ctx=ctx)

    elif args.command == "mkdir":
        item = store.mkdir(args.path, ctx=ctx)
        print(item.id, file=out)


def main(argv=None):
    load_dotenv(dotenv_path=Path(os.getcwd()) / ".env")

    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)

    try:
        config = load_storage_config(args.config)
    except Exception as e:
        print(f"Error loading config: {e}", file=sys.stderr)
        return 1

    if args.work_dir:
        config.work_dir = args.work_dir
    if args.credential:
        config.credential = args.credential

    try:
        store = new_storager(config)
    except InitError as e:
        print(f"Error initializing storage: {e}", file=sys.stderr)
        return 1

    ctx = Context.with_timeout(args.timeout) if args.timeout else None
    try:
        run(store, args, ctx=ctx)
    except StorageError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"Error: {e.err}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
