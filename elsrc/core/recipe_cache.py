from typing import Dict, List, Optional, Sequence
from pathlib import Path
import json
import datetime as dt

from elsrc.core.models import Recipe, ResolvedRecipe
from elsrc.core.version_handling import format_version

CACHE_FILE = "cache.json"

# ==============================================================
# RECIPE CACHE CLASS
# ==============================================================

class RecipeCache:
    """Remembers the recipe every package was installed from, for upgrade-all."""

    def __init__(self, root_dir: str | Path):
        self.root_dir: Path = Path(root_dir)
        self.cache_path: Path = self.root_dir / CACHE_FILE
        self._data: Optional[Dict] = None

    def load(self) -> Dict:
        """Load cache data and cache it."""
        data = {"version": "1", "packages": {}}
        if self.cache_path.exists():
            try:
                json_data = json.loads(self.cache_path.read_text(encoding="utf-8"))
            except json.JSONDecodeError:
                json_data = None
            if isinstance(json_data, dict) and json_data.get("version") == "1":
                data = json_data
        self._data = data
        return data

    def save(self) -> None:
        """Save cached data to the cache file."""
        if self._data is None:
            return
        self._data.setdefault("version", "1")
        self.cache_path.parent.mkdir(parents=True, exist_ok=True)
        self.cache_path.write_text(json.dumps(self._data, indent=2, ensure_ascii=False), encoding="utf-8")

    def record(self, name: str, recipe: Recipe, version: Sequence[int]) -> None:
        """Record the recipe and version a package was installed from."""
        if self._data is None:
            self.load()

        data: Dict = self._data  # type: ignore
        data.setdefault("packages", {})[name] = {
            "recipe": recipe.model_dump(mode="json", exclude_none=True),
            "version": format_version(version),
            "installed_at": dt.datetime.now(dt.timezone.utc).isoformat(),
        }
        self.save()

    def entries(self) -> List[ResolvedRecipe]:
        """Every recorded package as a resolved (name, recipe) pair."""
        if self._data is None:
            self.load()

        return [
            ResolvedRecipe(name, Recipe(**entry["recipe"]))
            for name, entry in sorted(self._data["packages"].items())  # type: ignore
            if "recipe" in entry
        ]
