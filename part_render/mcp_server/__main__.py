import argparse
import logging
import sys
import asyncio
from part_render.mcp_server.server import server
from part_render.core.config import load_config


def main():
    parser = argparse.ArgumentParser(
        description="part-render MCP Server - compile partial UI fragments against a project",
        epilog="Example: python -m part_render.mcp_server --config partrender.config.yaml"
    )
    parser.add_argument(
        "--config",
        help="Path to configuration YAML file (default: partrender.config.yaml)"
    )
    parser.add_argument("--project-root", dest="project_root", help="Project to index (overrides config)")
    parser.add_argument("--watch", dest="watch_enabled", action="store_true", default=None,
                        help="Refresh the component catalog when project files change")
    parser.add_argument("--log-level", dest="log_level", help="Logging level (DEBUG, INFO, WARNING, ...)")

    args = parser.parse_args()

    cli_args = {k: v for k, v in vars(args).items() if v is not None and k != "config"}
    config = load_config(config_path=args.config, cli_args=cli_args)

    logging.basicConfig(level=getattr(logging, config.log_level.upper(), logging.INFO), stream=sys.stderr)

    server.config = config

    logging.info(f"Server starting for project root: {config.resolved_root()}")
    logging.info("Server running on stdio")
    try:
        asyncio.run(server.run_stdio_async())
    except KeyboardInterrupt:
        logging.info("Server stopped")


if __name__ == "__main__":
    main()
