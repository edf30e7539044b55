import argparse
import asyncio
import logging

from drawpoker.models import TableConfig

from .server import HostServer


def main() -> None:
    parser = argparse.ArgumentParser(description="Five-card draw table host")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8765)
    parser.add_argument("--starting-stack", type=int, default=100)
    parser.add_argument("--ante", type=int, default=1)
    parser.add_argument("--max-discards", type=int, default=3)
    parser.add_argument("--seed", type=int, default=None, help="Base seed; hand N is shuffled with seed + N")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = parser.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level))

    config = TableConfig(
        starting_stack=args.starting_stack,
        ante=args.ante,
        max_discards=args.max_discards,
    )

    server = HostServer(config, seed=args.seed)
    asyncio.run(server.start(host=args.host, port=args.port))


if __name__ == "__main__":
    main()
