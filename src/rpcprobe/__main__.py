import argparse
import asyncio
import logging
import sys

from rpcprobe.config import load_config
from rpcprobe.dispatcher import RequestDispatcher
from rpcprobe.errors import ConfigError
from rpcprobe.logging_config import setup_logging
from rpcprobe.orchestrator import Orchestrator
from rpcprobe.report import print_results
from rpcprobe.sink import FileSink

log = logging.getLogger("rpcprobe")


async def run_once(config) -> int:
    sink = FileSink(config.log_dir)
    sink.initialize()
    async with RequestDispatcher(config.rpc_url, timeout=config.request_timeout) as dispatcher:
        orchestrator = Orchestrator(config, dispatcher, sink)
        try:
            await orchestrator.run()
        except Exception as e:
            log.exception("Fatal error")
            sink.write_fatal(f"{type(e).__name__}: {e}")
            return 1
    print_results(orchestrator.ledger, sink)
    return 0


def parse_args(argv=None):
    parser = argparse.ArgumentParser(prog="rpcprobe", description="Smoke-test an eth/debug/zks JSON-RPC node.")
    sub = parser.add_subparsers(dest="command")
    sub.add_parser("run", help="Run every suite once and print a summary (default).")
    serve = sub.add_parser("serve", help="Expose runs over HTTP.")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)

    if args.command == "serve":
        import uvicorn
        uvicorn.run("rpcprobe.app:create_app", factory=True, host=args.host, port=args.port, lifespan="on")
        return

    # Configuration problems end the run before any logging or network activity.
    try:
        config = load_config()
    except ConfigError as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        sys.exit(2)

    setup_logging(config.log_dir)
    try:
        sys.exit(asyncio.run(run_once(config)))
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        sys.exit(130)


if __name__ == "__main__":
    main()
