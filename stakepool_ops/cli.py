import argparse
import logging
import sys

from stakepool_ops.config import USAGE, load_config
from stakepool_ops.errors import ConfigError


def _setup_logging(verbose: bool):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load(path):
    try:
        return load_config(path)
    except ConfigError as exc:
        print(exc, file=sys.stderr)
        print(USAGE, file=sys.stderr)
        print("Please check the `config.example.json` and set up a config file.", file=sys.stderr)
        raise SystemExit(1)


def console_main(argv=None):
    ap = argparse.ArgumentParser(prog="stakepool-console", description="Offline stake pool operations console")
    ap.add_argument("config", nargs="?")
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)
    _setup_logging(args.verbose)
    config = _load(args.config)

    from stakepool_ops.context import OpsContext
    from stakepool_ops.operations import run_console

    raise SystemExit(run_console(OpsContext.from_config(config)))


def relay_main(argv=None):
    ap = argparse.ArgumentParser(prog="stakepool-relay", description="Core relay beside the block producer")
    ap.add_argument("config", nargs="?")
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=3000)
    ap.add_argument("-v", "--verbose", action="store_true")
    args = ap.parse_args(argv)
    _setup_logging(args.verbose)
    config = _load(args.config)

    import uvicorn
    from stakepool_ops.main import create_app

    uvicorn.run(create_app(config), host=args.host, port=args.port, log_config=None)


if __name__ == "__main__":
    console_main()
