"""Command line entry point: ``certanchor`` or ``python -m certanchor``."""

import argparse

import uvicorn


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="certanchor",
        description="Run the CertAnchor API server.",
    )
    parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    parser.add_argument("--port", type=int, default=8000, help="Bind port")
    parser.add_argument(
        "--reload", action="store_true", help="Reload on code changes (development)"
    )
    args = parser.parse_args()

    uvicorn.run(
        "certanchor.api.main:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
    )


if __name__ == "__main__":
    main()
