"""Command-line entry point.

Exit codes:
  0    story finished (word cap or end marker)
  1    configuration error, reported before any turn runs
  2    every participant failed within one pass of the roster
  130  interrupted, or input closed at the human prompt
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from owaat.config import Settings, load_settings
from owaat.generator import ExhaustedError, WordGenerator
from owaat.llm import OpenRouterLLM
from owaat.models import DEFAULT_MODELS, build_roster, parse_model_list
from owaat.runner import StoryRunner

EXIT_OK = 0
EXIT_CONFIG = 1
EXIT_EXHAUSTED = 2
EXIT_INTERRUPTED = 130


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="owaat",
        description="One Word At A Time: language models take turns writing a story.",
    )
    parser.add_argument("--human", action="store_true", default=None,
                        help="Join the rotation yourself")
    parser.add_argument("--end-marker", action="store_true", default=None,
                        help='Allow participants to finish with "THE END."')
    parser.add_argument("--shuffle", action="store_true", default=None,
                        help="Shuffle the turn order before starting")
    parser.add_argument("--verbose", action="store_true", default=None,
                        help="Enable debug logging")
    parser.add_argument("--max-words", type=int, default=None,
                        help="Stop after this many words (default 30, 100 with --human)")
    parser.add_argument("--delay-ms", type=int, default=None,
                        help="Pause between model turns in milliseconds (default 800)")
    parser.add_argument("--initial-text", default=None,
                        help="Text the story starts from")
    parser.add_argument("--models", default=None,
                        help='Roster override, e.g. "Claude=anthropic/claude-3-haiku,GPT-4=openai/gpt-4"')
    parser.add_argument("--no-bell", action="store_true",
                        help="Do not ring the terminal bell when it is your turn")
    return parser


def _bell(message: str) -> None:
    sys.stdout.write("\a")
    sys.stdout.flush()


async def _run(settings: Settings, *, bell: bool) -> str:
    models = parse_model_list(settings.models) if settings.models else DEFAULT_MODELS
    roster = build_roster(models, include_human=settings.human, shuffle=settings.shuffle)
    llm = OpenRouterLLM(api_key=settings.api_key, base_url=settings.base_url)
    generator = WordGenerator(roster, llm, settings, initial_text=settings.initial_text)
    runner = StoryRunner(generator, settings, notify=_bell if bell else None)
    runner.write_banner()
    return await runner.run()


def main(argv: list[str] | None = None) -> int:
    args = _parser().parse_args(argv)
    try:
        settings = load_settings(
            end_marker=args.end_marker,
            verbose=args.verbose,
            human=args.human,
            shuffle=args.shuffle,
            max_words=args.max_words,
            delay_ms=args.delay_ms,
            initial_text=args.initial_text,
            models=args.models,
        )
        if settings.models:
            parse_model_list(settings.models)
    except ValueError as e:  # ConfigError or a malformed model list
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_CONFIG

    logging.basicConfig(
        level=logging.DEBUG if settings.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        asyncio.run(_run(settings, bell=not args.no_bell))
    except ExhaustedError as e:
        print(f"\nError: {e}", file=sys.stderr)
        return EXIT_EXHAUSTED
    except KeyboardInterrupt:
        print("\nInterrupted.", file=sys.stderr)
        return EXIT_INTERRUPTED
    except EOFError:
        print("\nInput closed.", file=sys.stderr)
        return EXIT_INTERRUPTED
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
