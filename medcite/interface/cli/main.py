"""Command line entry point: ``medcite ask|retrieve|cite``.

Why: Interface layer stays thin (parse args, format output); all
orchestration lives in the use cases built by the container.
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence

from medcite.application.dto.query_dto import AnswerRequest, RetrievalRequest
from medcite.config.compose import Container, build_container
from medcite.config.logging import configure_logging
from medcite.domain.models import ExtractedCitation
from medcite.domain.services.citation_parsing import format_citation_text

RULE = "=" * 80


def _print_error(err: BaseException | None) -> None:
    print(f"\n[ERROR] {type(err).__name__}: {err}")


def _print_citations(citations: Sequence[ExtractedCitation]) -> None:
    print("\n" + RULE)
    print("CITATIONS:")
    print(RULE)
    if not citations:
        print("(none)")
    for c in citations:
        print(f"[{c.reference_number}] {format_citation_text(c.citation)}")


def cmd_ask(args: argparse.Namespace, container: Container) -> int:
    uc = container.get_answer_use_case()
    result = uc.execute(
        AnswerRequest(
            question=args.question,
            specialty_id=args.specialty,
            message_id=args.message_id,
            threshold=args.threshold,
            limit=args.limit,
            use_terms=args.use_terms,
        )
    )
    if not result.ok or result.value is None:
        _print_error(result.error)
        return 1

    value = result.value
    print("\n" + RULE)
    print("ANSWER:")
    print(RULE)
    print(value.clean_text)
    _print_citations(value.citations)
    if value.retrieval_error:
        print(f"\n[WARN] answered without passages: {value.retrieval_error}")
    return 0


def cmd_retrieve(args: argparse.Namespace, container: Container) -> int:
    uc = container.get_retrieve_use_case()
    req = RetrievalRequest(
        query=args.query,
        specialty_id=args.specialty,
        threshold=args.threshold,
        limit=args.limit,
    )
    result = uc.execute_with_terms(req) if args.use_terms else uc.execute(req)
    if not result.ok:
        _print_error(result.error)
        return 1

    passages = result.value or []
    if not passages:
        print("No passages above threshold.")
    for i, p in enumerate(passages, 1):
        title = p.metadata.title or p.id
        print(f"[{i}] {title} (similarity={p.similarity:.3f}, score={p.enhanced_score:.3f})")
    return 0


def cmd_cite(args: argparse.Namespace, container: Container) -> int:
    if args.file:
        with open(args.file, encoding="utf-8") as fh:
            text = fh.read()
    else:
        text = sys.stdin.read()

    if args.message_id:
        saved = container.get_extract_and_save_use_case().execute(args.message_id, text)
        if not saved.ok:
            _print_error(saved.error)
            return 1
        print(f"Saved {len(saved.value or [])} citations for {args.message_id}")

    extraction = container.parser.extract(text)
    _print_citations(extraction.citations)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="medcite", description="Medical RAG with citations")
    sub = parser.add_subparsers(dest="command", required=True)

    def add_retrieval_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--specialty", default=None, help="Specialty id, e.g. cardiology")
        p.add_argument("--threshold", type=float, default=None, help="Similarity (0-1)")
        p.add_argument("--limit", type=int, default=None, help="Max passages")
        p.add_argument("--use-terms", action="store_true", help="Two-pass term retrieval")

    ask = sub.add_parser("ask", help="Answer a question with citations")
    ask.add_argument("question")
    ask.add_argument("--message-id", default=None, help="Persist citations under this id")
    add_retrieval_args(ask)
    ask.set_defaults(func=cmd_ask)

    retrieve = sub.add_parser("retrieve", help="Show ranked passages for a query")
    retrieve.add_argument("query")
    add_retrieval_args(retrieve)
    retrieve.set_defaults(func=cmd_retrieve)

    cite = sub.add_parser("cite", help="Parse citations from an answer text")
    cite.add_argument("file", nargs="?", help="Text file (default: stdin)")
    cite.add_argument("--message-id", default=None, help="Persist citations under this id")
    cite.set_defaults(func=cmd_cite)

    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    container = build_container()
    configure_logging(container.settings)
    if getattr(args, "threshold", None) is None and hasattr(args, "threshold"):
        args.threshold = container.settings.rag_threshold
    if getattr(args, "limit", None) is None and hasattr(args, "limit"):
        args.limit = container.settings.rag_limit
    if hasattr(args, "use_terms"):
        args.use_terms = args.use_terms or container.settings.rag_use_terms
    return args.func(args, container)


if __name__ == "__main__":
    sys.exit(main())
