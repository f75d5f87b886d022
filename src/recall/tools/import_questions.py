import argparse
import asyncio
import json
import logging
import sys

from recall.config import load_settings
from recall.db import ensure_schema, make_engine, make_sessionmaker
from recall.store import QuestionStore
from recall.validation import parse_questions, validate_questions

logger = logging.getLogger(__name__)

async def run(path: str, content_id: str | None) -> int:
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    issues = [i for i in validate_questions(data) if i.severity == "error"]
    if issues:
        for issue in issues:
            logger.error(
                "question_invalid id=%s index=%s message=%s",
                issue.question_id,
                issue.item_index,
                issue.message,
            )
        return 1
    if content_id is None and isinstance(data, dict):
        content_id = data.get("content_id")
    if not content_id:
        logger.error("content_id is required (flag or top-level key)")
        return 2

    settings = load_settings()
    engine = make_engine(settings.database_url)
    try:
        await ensure_schema(engine)
        store = QuestionStore(make_sessionmaker(engine))
        count = await store.replace_questions(content_id, parse_questions(data))
    finally:
        await engine.dispose()
    logger.info("questions_imported content_id=%s count=%s", content_id, count)
    return 0

def main(argv: list[str]) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    parser = argparse.ArgumentParser()
    parser.add_argument("path")
    parser.add_argument("--content-id", default=None)
    args = parser.parse_args(argv)
    return asyncio.run(run(args.path, args.content_id))

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
