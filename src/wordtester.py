#!/usr/bin/env python3

"""

    Command line tester for the dictionary engine

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl

    This module loads the dictionary through the DictionaryLoader,
    or directly from a local word list file, and runs queries
    against it through a SearchWorker.

"""

from __future__ import annotations

from typing import Any, Dict, List, Optional

import argparse
import asyncio
import logging
import sys
import time
from dataclasses import replace

from cache import CacheStore, open_cache_store
from config import EngineConfig, get_config, init_logging
from errors import FetchFailed
from loader import DictionaryLoader
from retry import RetryPolicy
from worker import SearchWorker


def read_word_file(path: str, timeout: float) -> str:
    """A fetch function that reads the word list from a local file"""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return f.read()
    except OSError as e:
        raise FetchFailed(f"Unable to read word list from {path}: {e}") from e


def _print_results(response: Dict[str, Any], show_frequency: bool) -> None:
    if response["type"] == "error":
        print(f"Error: {response['message']}")
        return
    for item in response["results"]:
        if show_frequency:
            freq = item["frequency"]
            print(f"{item['word']:<16}{freq['frequency']:>4}  {freq['difficulty']}")
        else:
            print(item["word"])
    print(
        f"{response['resultCount']} results in {response['searchTime']:.1f} ms"
    )


async def _run(args: argparse.Namespace, config: EngineConfig) -> int:
    store: Optional[CacheStore] = None
    if args.file:
        # A local file is read once, without retries
        loader = DictionaryLoader(
            config,
            None,
            fetch=lambda url, timeout: read_word_file(args.file, timeout),
            policy=RetryPolicy(max_attempts=1, timeout=None),
        )
    else:
        if not args.no_cache:
            store = open_cache_store(
                config.cache_key,
                config.cache_database_url,
                config.redis_host,
                config.redis_port,
                echo=config.echo_sql,
            )
        loader = DictionaryLoader(config, store)

    async with SearchWorker(loader, config.search_result_limit) as worker:
        t0 = time.time()
        loaded = await worker.request({"type": "loadDictionary"})
        if loaded["type"] == "error":
            print(f"Error: {loaded['message']}")
            return 1
        print(
            f"Dictionary of {loaded['wordCount']} words loaded "
            f"in {time.time() - t0:.2f} seconds"
        )
        engine = worker.engine
        assert engine is not None

        if args.command == "anagram":
            params: Dict[str, Any] = {
                "searchType": "anagram",
                "letters": args.rack,
                "allowPartial": args.partial,
            }
        elif args.command == "pattern":
            params = {
                "searchType": "pattern",
                "pattern": args.mask,
                "letters": args.pool or "",
            }
        elif args.command == "hooks":
            hooks = engine.hooks(args.word)
            print(f"Front hooks: {''.join(hooks.front) or '-'}")
            print(f"Back hooks:  {''.join(hooks.back) or '-'}")
            return 0
        elif args.command == "analyze":
            analysis = engine.analyze(args.word)
            word = analysis["word"]
            print(f"\"{word}\" is {'' if analysis['valid'] else 'not '}found")
            print(f"Tile score: {analysis['score']}")
            print(
                "Letters: "
                + " ".join(
                    f"{li['letter']}{li['value']}({li['difficulty']})"
                    for li in analysis["letters"]
                )
            )
            if analysis["valid"]:
                hooks_dict = analysis["hooks"]
                freq = analysis["frequency"]
                print(f"Hooks: {''.join(hooks_dict['front']) or '-'} {word} "
                      f"{''.join(hooks_dict['back']) or '-'}")
                print(f"Anagrams: {', '.join(analysis['anagrams']) or '-'}")
                print(f"Frequency: {freq['frequency']} ({freq['difficulty']})")
            return 0
        else:
            verdict = engine.judge(args.words)
            for w, valid in verdict["words"].items():
                print(f"{w:<16}{'valid' if valid else 'INVALID'}")
            print(f"Play is {'valid' if verdict['valid'] else 'not valid'}")
            return 0 if verdict["valid"] else 1

        if args.sort_desc:
            params["sortOrder"] = "desc"
        if args.by_frequency:
            params["sortByFrequency"] = True
        response = await worker.request(
            {"type": "searchWords", "searchParams": params, "correlationId": 1}
        )
        _print_results(response, args.by_frequency)
        return 0 if response["type"] == "searchResults" else 1


def main(argv: Optional[List[str]] = None) -> int:
    """Guido van Rossum's pattern for a Python main function"""
    parser = argparse.ArgumentParser(
        description="Query the word study dictionary",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python src/wordtester.py anagram RETAINS
  python src/wordtester.py anagram "CAT?" --partial
  python src/wordtester.py pattern _AT --pool CBE
  python src/wordtester.py --file words.txt hooks CAT
        """,
    )
    parser.add_argument("--url", help="Fetch the word list from this URL")
    parser.add_argument("--file", help="Read the word list from a local file")
    parser.add_argument(
        "--no-cache", action="store_true", help="Bypass the dictionary cache"
    )
    parser.add_argument(
        "--desc", dest="sort_desc", action="store_true", help="Longest words first"
    )
    parser.add_argument(
        "--by-frequency", action="store_true", help="Sort results by frequency"
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("anagram", help="Find words that can be made from a rack")
    p.add_argument("rack", help="Rack letters; '?' or '.' for a blank")
    p.add_argument("--partial", action="store_true", help="Allow unused tiles")

    p = sub.add_parser("pattern", help="Find words matching a mask")
    p.add_argument("mask", help="Mask with '_' for any letter")
    p.add_argument("--pool", help="Letters available for the open positions")

    p = sub.add_parser("hooks", help="Show the front and back hooks of a word")
    p.add_argument("word")

    p = sub.add_parser("analyze", help="Show an analysis of a word")
    p.add_argument("word")

    p = sub.add_parser("judge", help="Check whether all words of a play are valid")
    p.add_argument("words", nargs="+")

    args = parser.parse_args(argv)

    config = get_config()
    if args.url:
        config = replace(config, wordlist_url=args.url)
    init_logging("DEBUG" if args.verbose else config.log_level)

    try:
        return asyncio.run(_run(args, config))
    except KeyboardInterrupt:
        logging.info("Interrupted by user")
        return 1


if __name__ == "__main__":
    sys.exit(main())
