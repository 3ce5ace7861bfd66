import json
from pathlib import Path


def count_lines(path: Path) -> int:
    """Count non-blank lines, used to size progress bars before streaming."""
    with open(path, "r", encoding="utf-8") as f:
        return sum(1 for line in f if line.strip())

async def ndjson_source(path: Path):
    """
    Yield one document per non-blank line of an NDJSON file.

    Raises:
        ValueError: when a line is not a JSON object
    """
    with open(path, "r", encoding="utf-8") as f:
        for line_number, line in enumerate(f, 1):
            if not line.strip():
                continue
            doc = json.loads(line)
            if not isinstance(doc, dict):
                raise ValueError(f"{path}:{line_number} is not a JSON object")
            yield doc
