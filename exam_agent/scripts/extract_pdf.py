from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from exam_agent.core.prompts import page_context
from exam_agent.models.schemas import ExtractedQuestion
from exam_agent.services.page_images import image_to_data_url, iter_pdf_page_images
from exam_agent.services.question_service import QuestionService
from exam_agent.utils.errors import ExamAgentError, NoKeysConfigured, build_error_payload
from exam_agent.utils.logging_setup import configure_logging
from exam_agent.utils.settings import get_settings


def _page_images(path: Path, max_pages: Optional[int]):
    if path.suffix.lower() == ".pdf":
        for idx, data_url in enumerate(iter_pdf_page_images(path), start=1):
            if max_pages is not None and idx > max_pages:
                return
            yield idx, data_url
    else:
        yield 1, image_to_data_url(path)


async def extract_pages(
    service: QuestionService, pages: Iterable[Tuple[int, str]]
) -> Tuple[List[ExtractedQuestion], List[Dict[str, object]]]:
    """Extract pages in order, carrying page memory and the previous page's statements."""
    page_memory: Dict[int, str] = {}
    previous_context = ""
    questions: List[ExtractedQuestion] = []
    errors: List[Dict[str, object]] = []

    for page_number, data_url in pages:
        try:
            page_questions = await service.extract_questions(
                data_url, page_number, previous_context, page_memory
            )
        except NoKeysConfigured:
            raise
        except ExamAgentError as e:
            errors.append({"page_number": page_number, **build_error_payload(e)})
            print(f"page {page_number}: FAILED ({e})")
            continue
        previous_context = page_context(page_questions)
        questions.extend(page_questions)
        print(f"page {page_number}: {len(page_questions)} question(s)")
    return questions, errors


async def _run(path: Path, keys: Optional[List[str]], max_pages: Optional[int]) -> Dict[str, object]:
    service = QuestionService.from_settings()
    if keys:
        service.set_api_keys(keys)

    questions, errors = await extract_pages(service, _page_images(path, max_pages))

    records = []
    invalid = 0
    for q in questions:
        check = service.validate_question_structure(q)
        if not check.is_valid:
            invalid += 1
        records.append({**q.model_dump(exclude_none=True), "structure": check.model_dump()})

    print(f"total: {len(records)} question(s), {invalid} failed structure check, {len(errors)} page error(s)")
    return {"source": str(path), "questions": records, "errors": errors}


def main() -> None:
    parser = argparse.ArgumentParser(description="Extract exam questions from a PDF (or a single page image) with Gemini.")
    parser.add_argument("source", help="Path to a PDF or an image file")
    parser.add_argument("--keys", default=None, help="Comma-separated Gemini API keys (default: GEMINI_API_KEYS)")
    parser.add_argument("--out", default=None, help="Write JSON result to this file instead of stdout")
    parser.add_argument("--pages", type=int, default=None, help="Only process the first N pages")
    args = parser.parse_args()

    configure_logging(get_settings())

    path = Path(args.source).expanduser().resolve()
    if not path.exists():
        raise SystemExit(f"File not found: {path}")
    keys = [k for k in (args.keys or "").split(",") if k.strip()] or None

    try:
        result = asyncio.run(_run(path, keys, args.pages))
    except ExamAgentError as e:
        raise SystemExit(f"Extraction failed: {e}")

    text = json.dumps(result, ensure_ascii=False, indent=2)
    if args.out:
        Path(args.out).write_text(text, encoding="utf-8")
        print(f"wrote {args.out}")
    else:
        print(text)


if __name__ == "__main__":
    main()
