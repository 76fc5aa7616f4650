import argparse
import json
import logging
import os
import sys
import time
from pathlib import Path

from .config import DEFAULT_MODEL_NAME, THINKING_LEVELS, load_api_key
from .core import GroundedSearchClient
from .errors import GeminiSearchError
from .grounding import add_citations

logger = logging.getLogger("gemini_grounded_search.cli")


def _thinking_level(value: str) -> str:
    if value.upper() not in THINKING_LEVELS:
        raise argparse.ArgumentTypeError(
            f"invalid thinking level {value!r}: must be one of minimal, low, medium, high"
        )
    return value.upper()


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gemini-search",
        description="Perform a grounded search using the Gemini API and resolve citation redirect URLs.",
    )
    p.add_argument('query', nargs='?', help="Search query.")
    p.add_argument('-p', '--prompt', help="Search query (alternative to the positional argument).")
    p.add_argument(
        '-k', '--api-key',
        help="Google AI API key. Can also be set with the GEMINI_API_KEY environment variable.",
    )
    p.add_argument(
        '-m', '--model',
        help="Gemini model to use. Can also be set with the GEMINI_MODEL_ID environment variable.",
    )
    p.add_argument(
        '-t', '--thinking-level', type=_thinking_level,
        help="Thinking level for the model (minimal, low, medium, high). Only for Gemini 3 series models.",
    )
    p.add_argument('-o', '--output', type=str, help="Optional path to save JSON result.")
    p.add_argument('--inline-citations', action='store_true', help="Insert [n](url) links into the text.")
    p.add_argument('--no-redirect', action='store_true', help="Keep the redirect URLs returned by the API.")
    p.add_argument('-v', '--verbose', action='store_true', help="Enable verbose output for debugging.")
    p.add_argument('--no-verbose', action='store_true', help="Suppress printed output.")
    return p


def _mask(key: str) -> str:
    if len(key) <= 8:
        return "****"
    return f"{key[:4]}****{key[-4:]}"


def main(argv=None) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    api_key = args.api_key or load_api_key()
    if not api_key:
        print("API key is required. Set it with --api-key or the GEMINI_API_KEY environment variable.",
              file=sys.stderr)
        return 1
    model = args.model or os.getenv("GEMINI_MODEL_ID") or DEFAULT_MODEL_NAME
    query = args.query or args.prompt
    if not query:
        print("Search query argument is required.", file=sys.stderr)
        return 1

    try:
        client = GroundedSearchClient(
            api_key,
            model_name=model,
            thinking_level=args.thinking_level,
            no_redirection=args.no_redirect,
            show_progress=args.verbose,
        )
    except GeminiSearchError as e:
        print(f"Failed to create client: {e}", file=sys.stderr)
        return 1

    if args.verbose:
        logger.info("API Key: %s", _mask(api_key))
        logger.info("Using model: %s", model)
        logger.info("Search query: %s", query)
        if args.thinking_level:
            logger.info("Thinking level: %s", args.thinking_level)

    started = time.monotonic()
    try:
        with client:
            resp = client.generate_grounded_content(query)
    except GeminiSearchError as e:
        print(f"Search failed: {e}", file=sys.stderr)
        return 1
    elapsed = time.monotonic() - started

    if not args.no_verbose:
        text = resp.generated_text
        if args.inline_citations:
            text = add_citations(text, resp.grounding_attributions)
        print(text)
        if resp.grounding_attributions:
            print("\n---\nSources:")
            for attr in resp.grounding_attributions:
                print(f"- {attr.title} ({attr.url})")

    if args.output:
        output_path = Path(args.output)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        result = resp.to_dict()
        result.update({"query": query, "model": model})
        with output_path.open('w') as f:
            json.dump(result, f, indent=2)

    logger.info("Search completed in %.2fs", elapsed)
    return 0


def build_list_models_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="gemini-list-models",
        description="List the Gemini models available to your API key.",
    )
    p.add_argument(
        '-k', '--api-key',
        help="Google AI API key. Can also be set with the GEMINI_API_KEY environment variable.",
    )
    return p


def list_models_main(argv=None) -> int:
    args = build_list_models_parser().parse_args(argv)
    api_key = args.api_key or load_api_key()
    if not api_key:
        print("GEMINI_API_KEY environment variable is required.", file=sys.stderr)
        return 1

    try:
        with GroundedSearchClient(api_key, no_redirection=True) as client:
            models = client.list_models()
    except GeminiSearchError as e:
        print(f"Error listing models: {e}", file=sys.stderr)
        return 1

    print("Available models:")
    print("=================")
    for m in models:
        print(f"\nModel: {m.name}")
        if m.display_name:
            print(f"  Display Name: {m.display_name}")
        if m.description:
            print(f"  Description: {m.description}")
        if m.supported_actions:
            print(f"  Supported Actions: {', '.join(m.supported_actions)}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
