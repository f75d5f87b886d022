import argparse
import json
import sys

from recall.validation import validate_questions

def _load_json(path: str):
    with open(path, "r", encoding="utf-8") as f:
        return json.load(f)

def validate(path: str) -> int:
    issues = validate_questions(_load_json(path))
    errors = 0
    for issue in issues:
        where = issue.question_id or f"#{issue.item_index}"
        print(f"{issue.severity.upper()}: {where}: {issue.message}")
        if issue.severity == "error":
            errors += 1
    if errors:
        return 1
    print("OK")
    return 0

def main(argv: list[str]) -> int:
    parser = argparse.ArgumentParser()
    parser.add_argument("path", nargs="?", default="data/questions.json")
    args = parser.parse_args(argv)
    return validate(args.path)

if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
