"""Command line entry point: tokenize text, fit parameter files, encode vectors."""

from __future__ import annotations

import argparse
from collections.abc import Sequence
import logging
from pathlib import Path
import sys
from typing import Any

import orjson

from vectordb_text.bm25 import PRESET_LANGUAGES, BM25Encoder
from vectordb_text.config import EncoderSettings
from vectordb_text.errors import VectorDBTextError
from vectordb_text.observability.logging import configure_logging


logger = logging.getLogger(__name__)


def build_argument_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--params",
        type=Path,
        help="Parameter file to load before running the command",
    )
    common.add_argument(
        "--language",
        choices=PRESET_LANGUAGES,
        help="Bundled preset to load before running the command",
    )
    common.add_argument(
        "--log-level",
        help="Log level (defaults to VECTORDB_TEXT_LOG_LEVEL or info)",
    )
    common.add_argument(
        "--json-logs",
        action="store_true",
        default=None,
        help="Emit structured JSON logs on stderr",
    )

    parser = argparse.ArgumentParser(
        prog="vectordb-text",
        description="BM25 sparse vectors for Chinese and English text",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    tokenize = subparsers.add_parser("tokenize", parents=[common], help="Print the tokens of TEXT")
    tokenize.add_argument("text", metavar="TEXT")

    fit = subparsers.add_parser("fit", parents=[common], help="Fit corpus files and write a parameter file")
    fit.add_argument(
        "corpus",
        nargs="+",
        type=Path,
        metavar="CORPUS",
        help="UTF-8 text file with one document per line",
    )
    fit.add_argument(
        "--output",
        "-o",
        type=Path,
        required=True,
        help="Where to write the fitted parameter file",
    )

    encode = subparsers.add_parser("encode", parents=[common], help="Print the sparse vector of each TEXT")
    encode.add_argument("texts", nargs="+", metavar="TEXT")
    encode.add_argument(
        "--query",
        action="store_true",
        help="Encode as a query (normalized idf) instead of a document",
    )
    return parser


def _build_encoder(args: argparse.Namespace, settings: EncoderSettings) -> BM25Encoder:
    if args.language:
        settings = settings.model_copy(update={"language": args.language})
    encoder = BM25Encoder.from_settings(settings)
    if args.params is not None:
        encoder.set_params(args.params)
    return encoder


def _read_corpus(paths: Sequence[Path]) -> list[str]:
    documents: list[str] = []
    for path in paths:
        with path.open(encoding="utf-8") as handle:
            documents.extend(line.rstrip("\r\n") for line in handle)
    return documents


def _emit(payload: Any) -> None:
    sys.stdout.write(orjson.dumps(payload).decode("utf-8") + "\n")


def _run(args: argparse.Namespace, settings: EncoderSettings) -> None:
    encoder = _build_encoder(args, settings)

    if args.command == "tokenize":
        _emit(encoder.get_tokenizer().tokenize(args.text))
        return

    if args.command == "fit":
        encoder.fit_corpus(_read_corpus(args.corpus))
        encoder.download_params(args.output)
        stats = encoder.statistics
        _emit(
            {
                "output": str(args.output),
                "doc_count": stats.doc_count,
                "average_doc_length": stats.average_doc_length,
                "terms": len(stats.token_freq),
            }
        )
        return

    vectors = encoder.encode_queries(args.texts) if args.query else encoder.encode_texts(args.texts)
    for vector in vectors:
        _emit(vector.to_pairs())


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_argument_parser()
    args = parser.parse_args(argv)

    settings = EncoderSettings()
    json_logs = settings.log_json if args.json_logs is None else args.json_logs
    configure_logging(level=args.log_level or settings.log_level, json_output=json_logs)

    try:
        _run(args, settings)
    except VectorDBTextError as exc:
        logger.error("%s", exc)
        return 1
    except (OSError, UnicodeDecodeError) as exc:
        logger.error("Cannot read corpus: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
