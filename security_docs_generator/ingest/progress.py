from typing import Optional

from tqdm import tqdm


def create_progress_bar(index: str, total: Optional[int] = None) -> tqdm:
    return tqdm(total=total, desc=f"Progress indexing into {index}", unit="docs")
