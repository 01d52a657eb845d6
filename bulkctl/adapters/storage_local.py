from __future__ import annotations
import json, os
from typing import Dict, Optional
from bulkctl.domain.ports import StoragePort


class StorageLocal(StoragePort):
    """Local filesystem storage for user settings (JSON)."""

    FILENAME = "user_settings.json"

    def __init__(self, root_dir: str = ".") -> None:
        self.root = root_dir

    @property
    def settings_path(self) -> str:
        return os.path.join(self.root, self.FILENAME)

    def save_user_settings(self, payload: Dict) -> None:
        os.makedirs(self.root, exist_ok=True)
        with open(self.settings_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, ensure_ascii=False, indent=2)

    def load_user_settings(self) -> Optional[Dict]:
        if not os.path.exists(self.settings_path):
            return None
        with open(self.settings_path, "r", encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.settings_path}: expected a JSON object")
        return data
