"""JSON-file catalog source."""

from pathlib import Path


class JsonFileCatalogSource:
    """Reads the question and advice catalogs from JSON files on disk.

    Files are re-read on every call so edits take effect without a restart.

    Args:
        questions_file: Path to the question catalog (a list of sections).
        advice_file: Path to the advice catalog (an object keyed by section).
    """

    def __init__(self, questions_file: Path, advice_file: Path) -> None:
        self._questions_file = Path(questions_file)
        self._advice_file = Path(advice_file)

    def read_questions(self) -> bytes:
        return self._questions_file.read_bytes()

    def read_advice(self) -> bytes:
        return self._advice_file.read_bytes()
