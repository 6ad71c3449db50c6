#!/usr/bin/env python3
"""Entry point for the throne room encounter."""

from __future__ import annotations

import argparse
import logging
import sys

import pygame

from config import ConfigError, load_config
from game import Game


logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging based on verbosity level."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Throne room riddle encounter")
    parser.add_argument(
        "--config",
        default=None,
        help="JSON file overriding encounter timings and rates.",
    )
    parser.add_argument(
        "--smoke",
        action="store_true",
        help="Run for a small number of frames and exit (test mode).",
    )
    parser.add_argument(
        "--frames",
        type=int,
        default=90,
        help="Frame budget for --smoke mode.",
    )
    parser.add_argument(
        "--autoplay",
        action="store_true",
        help="Walk to the throne and answer prompts automatically.",
    )
    parser.add_argument(
        "--answer",
        action="append",
        default=[],
        help="Answer used by --autoplay, in order; repeat for the second riddle.",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for shake and spawn randomness.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    setup_logging(args.verbose)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        logger.error("%s", exc)
        return 2

    pygame.init()
    pygame.display.set_caption("Throne Room")
    try:
        game = Game(
            config=config,
            smoke=args.smoke,
            max_frames=max(1, args.frames),
            autoplay=args.autoplay,
            answers=args.answer,
            seed=args.seed,
        )
        game.run()
    finally:
        pygame.quit()
    return 0


if __name__ == "__main__":
    sys.exit(main())
