from __future__ import annotations

import argparse
import asyncio
import base64
import json
import mimetypes
from pathlib import Path
from typing import Any

from app.core.config import generation_config
from app.modules.generation.errors import GenerationError
from app.modules.generation.normalizer import normalize
from app.modules.generation.pipeline import GenerationPipeline
from app.modules.generation.provider import build_oracle_by_settings


def _load_notes(args: argparse.Namespace) -> str | None:
    if args.notes and args.notes_file:
        raise SystemExit("Provide either --notes or --notes-file, not both")
    if args.notes_file:
        return Path(args.notes_file).read_text(encoding="utf-8")
    return args.notes


def _encode_image(path: str) -> str:
    """Read an image file into a base64 data URL."""
    p = Path(path)
    mime, _ = mimetypes.guess_type(p.name)
    if not mime or not mime.startswith("image/"):
        raise SystemExit(f"Not an image file: {path}")
    data = base64.b64encode(p.read_bytes()).decode("ascii")
    return f"data:{mime};base64,{data}"


def build_body(args: argparse.Namespace) -> dict[str, Any]:
    notes = _load_notes(args)
    body: dict[str, Any] = {
        "numberOfQuestions": args.count,
        "questionType": args.type,
    }
    if args.image:
        body["contentType"] = "images"
        body["images"] = [_encode_image(p) for p in args.image]
        if notes:
            body["notes"] = notes
    else:
        if not notes:
            raise SystemExit("--notes, --notes-file or --image is required")
        body["contentType"] = "text"
        body["notes"] = notes
    return body


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="studygen", description="Study question generator CLI"
    )
    sub = parser.add_subparsers(dest="cmd", required=True)

    g = sub.add_parser(
        "generate", help="Generate questions or flashcards from notes or images"
    )
    g.add_argument("--notes", "-n", help="Study notes (text)")
    g.add_argument("--notes-file", help="Path to a file containing the notes")
    g.add_argument(
        "--image",
        "-i",
        action="append",
        help="Path to an image; repeat for several images",
    )
    g.add_argument("--count", "-c", type=int, default=10, help="Number of items")
    g.add_argument(
        "--type",
        "-t",
        choices=["mcq", "flashcard"],
        default="mcq",
        help="Item type",
    )

    args = parser.parse_args(argv)
    if args.cmd == "generate":
        body = build_body(args)
        pipeline = GenerationPipeline(
            config=generation_config, oracle=build_oracle_by_settings()
        )
        try:
            request = normalize(body, generation_config)
            result = asyncio.run(pipeline.generate(request))
        except GenerationError as e:
            print(json.dumps(e.to_payload(), indent=2))
            return 1
        print(json.dumps(result.to_response(), indent=2))
        return 0

    parser.print_help()
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
