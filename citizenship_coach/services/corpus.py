"""
corpus.py
---------

Loads the USCIS civics corpus (100 questions) from its JSON file.
"""

import json
import logging
from typing import List

from pydantic import ValidationError

from ..schemas.documents import RawDocument

logger = logging.getLogger(__name__)


def load_corpus(path: str) -> List[RawDocument]:
    """
    Read and validate the corpus file.

    Args:
        path (str): JSON file holding a list of `{id, question, answer, category}`.

    Returns:
        List[RawDocument]: Valid records in file order. Invalid records are
        logged and skipped.
    """
    with open(path, encoding="utf-8") as f:
        records = json.load(f)

    documents = []
    for index, record in enumerate(records):
        try:
            documents.append(RawDocument(**record))
        except (ValidationError, TypeError) as e:
            logger.error("Skipping corpus record #%d: %s", index, e)
    logger.info("Loaded %d question(s) from %s", len(documents), path)
    return documents
