from uuid import uuid4
from datetime import datetime, timezone
from typing import Dict, Any

from security_docs_generator import __version__

AUTHOR = "security-documents-generator"
RUN_ID = str(uuid4())


def generate_metadata() -> Dict[str, Any]:
    return {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "version": __version__,
        "author": AUTHOR,
        "runId": RUN_ID,
    }


def add_metadata_to_doc(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Return a copy of doc stamped with a _metadata block identifying this run."""
    return {**doc, "_metadata": generate_metadata()}


def get_metadata_kql() -> str:
    return f'_metadata.author: "{AUTHOR}"'
