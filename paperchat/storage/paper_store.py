import os
import json
from typing import Optional
from paperchat.models.paper import Paper
from paperchat.storage.base import PaperStore
from paperchat.core.errors import PersistenceFailure

class LocalPaperStore(PaperStore):
    """
    Implements PaperStore using the local disk.
    - One JSON file per paper, holding the paper record and its extraction tree.
    """

    def __init__(self, papers_path: str = "./data/papers"):
        self.papers_path = papers_path
        os.makedirs(self.papers_path, exist_ok=True)

    def _path(self, paper_id: str) -> str:
        return os.path.join(self.papers_path, f"{paper_id}.json")

    def get_paper(self, paper_id: str) -> Optional[Paper]:
        path = self._path(paper_id)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise PersistenceFailure(f"Could not read paper {paper_id}: {e}") from e
        return Paper(**data)

    def save_paper(self, paper: Paper) -> None:
        try:
            with open(self._path(paper.paper_id), "w", encoding="utf-8") as f:
                json.dump(paper.model_dump(mode="json"), f, ensure_ascii=False, indent=2)
        except OSError as e:
            raise PersistenceFailure(f"Could not write paper {paper.paper_id}: {e}") from e
