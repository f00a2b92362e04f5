"""
Query tabs and their persistence

TabList owns the ordered tabs and the active tab. It keeps two
invariants at all times: at least one tab exists, and active_tab_id
names one of them. Persistence goes through a TabStore so the storage
backend can be swapped; the default JsonTabStore writes a versioned JSON
document and upgrades the older version-less format on load.
"""

import json
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Union

from filequery.core.errors import ValidationError

STATE_VERSION = 1
DEFAULT_TAB_SQL = "SELECT 42 AS ok;"


class TabCategory(str, Enum):
    SCRIPTS = "scripts"
    BOOKMARKS = "bookmarks"
    TEMPLATES = "templates"


@dataclass
class QueryTab:
    """One editor tab"""

    id: str
    name: str
    sql_text: str = ""
    dirty: bool = False
    category: TabCategory = TabCategory.SCRIPTS

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["category"] = self.category.value
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "QueryTab":
        tab_id = str(data.get("id") or "").strip()
        name = str(data.get("name") or "").strip()
        if not tab_id:
            raise ValidationError("Tab id must not be empty")
        if not name:
            raise ValidationError(f"Tab {tab_id} has an empty name")
        try:
            category = TabCategory(data.get("category", TabCategory.SCRIPTS.value))
        except ValueError as e:
            raise ValidationError(f"Unknown tab category: {data.get('category')}") from e
        return cls(
            id=tab_id,
            name=name,
            sql_text=str(data.get("sql_text", "")),
            dirty=bool(data.get("dirty", False)),
            category=category,
        )


@dataclass
class TabsSnapshot:
    """Serializable state of a TabList"""

    tabs: List[QueryTab] = field(default_factory=list)
    active_tab_id: Optional[str] = None
    version: int = STATE_VERSION

    def to_dict(self) -> Dict[str, Any]:
        return {
            "version": self.version,
            "active_tab_id": self.active_tab_id,
            "tabs": [tab.to_dict() for tab in self.tabs],
        }


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


def _validate_name(name: str) -> str:
    name = (name or "").strip()
    if not name:
        raise ValidationError("Tab name must not be empty")
    return name


class TabList:
    """
    Ordered tabs with an active tab

    Example:
        >>> tabs = TabList()
        >>> tab = tabs.new_tab("SELECT 1")
        >>> tabs.update_text(tab.id, "SELECT 2")
        >>> tabs.get(tab.id).dirty
        True
    """

    def __init__(self, tabs: Optional[List[QueryTab]] = None, active_tab_id: Optional[str] = None):
        self.tabs: List[QueryTab] = []
        self.tab_counter = 0
        self.active_tab_id: str = ""

        seen = set()
        for tab in tabs or []:
            if tab.id in seen:
                raise ValidationError(f"Duplicate tab id: {tab.id}")
            seen.add(tab.id)
            self.tabs.append(tab)
        self.tab_counter = len(self.tabs)

        if not self.tabs:
            self.new_tab(DEFAULT_TAB_SQL)
        elif active_tab_id in seen:
            self.active_tab_id = active_tab_id
        else:
            self.active_tab_id = self.tabs[0].id

    def __len__(self) -> int:
        return len(self.tabs)

    def __iter__(self):
        return iter(self.tabs)

    @property
    def active(self) -> QueryTab:
        return self.get(self.active_tab_id)

    def get(self, tab_id: str) -> QueryTab:
        for tab in self.tabs:
            if tab.id == tab_id:
                return tab
        raise ValidationError(f"Unknown tab: {tab_id}")

    def by_category(self, category: Union[TabCategory, str]) -> List[QueryTab]:
        category = TabCategory(category)
        return [tab for tab in self.tabs if tab.category is category]

    def new_tab(
        self,
        sql_text: str = "",
        name: Optional[str] = None,
        category: Union[TabCategory, str] = TabCategory.SCRIPTS,
        activate: bool = True,
    ) -> QueryTab:
        """Create a tab (named "Query N" by default) and make it active"""
        self.tab_counter += 1
        tab = QueryTab(
            id=_new_id(),
            name=_validate_name(name) if name is not None else f"Query {self.tab_counter}",
            sql_text=sql_text,
            category=TabCategory(category),
        )
        self.tabs.append(tab)
        if activate or not self.active_tab_id:
            self.active_tab_id = tab.id
        return tab

    def from_template(self, template_id: str) -> QueryTab:
        """Instantiate a template as a new script tab"""
        template = self.get(template_id)
        if template.category is not TabCategory.TEMPLATES:
            raise ValidationError(f"Tab {template.name} is not a template")
        return self.new_tab(template.sql_text, name=template.name)

    def bookmark(self, tab_id: str, name: Optional[str] = None) -> QueryTab:
        """Save a copy of a tab's SQL as a bookmark"""
        source = self.get(tab_id)
        return self.new_tab(
            source.sql_text,
            name=name if name is not None else source.name,
            category=TabCategory.BOOKMARKS,
            activate=False,
        )

    def activate(self, tab_id: str) -> QueryTab:
        tab = self.get(tab_id)
        self.active_tab_id = tab.id
        return tab

    def rename(self, tab_id: str, name: str) -> QueryTab:
        tab = self.get(tab_id)
        tab.name = _validate_name(name)
        return tab

    def update_text(self, tab_id: str, sql_text: str) -> QueryTab:
        tab = self.get(tab_id)
        if tab.sql_text != sql_text:
            tab.sql_text = sql_text
            tab.dirty = True
        return tab

    def mark_executed(self, tab_id: str) -> QueryTab:
        tab = self.get(tab_id)
        tab.dirty = False
        return tab

    def close_tab(self, tab_id: str) -> QueryTab:
        """
        Close a tab

        Closing the last remaining tab replaces it with a fresh empty tab.
        When the active tab closes, its right neighbour (or else the left
        one) becomes active.

        Returns:
            The tab that is active afterwards
        """
        tab = self.get(tab_id)
        index = self.tabs.index(tab)
        self.tabs.remove(tab)

        if not self.tabs:
            return self.new_tab()
        if self.active_tab_id == tab_id:
            self.active_tab_id = self.tabs[min(index, len(self.tabs) - 1)].id
        return self.active

    def snapshot(self) -> TabsSnapshot:
        return TabsSnapshot(tabs=list(self.tabs), active_tab_id=self.active_tab_id)

    @classmethod
    def from_snapshot(cls, snapshot: Optional[TabsSnapshot]) -> "TabList":
        if snapshot is None:
            return cls()
        return cls(snapshot.tabs, snapshot.active_tab_id)


class TabStore(Protocol):
    """Storage for the tab list"""

    def load(self) -> Optional[TabsSnapshot]: ...

    def save(self, snapshot: TabsSnapshot) -> None: ...


def migrate_state(payload: Any) -> TabsSnapshot:
    """
    Upgrade any known persisted payload to the current snapshot

    Version-less payloads are the legacy list of {"title", "content"}
    objects; each becomes a clean script tab.

    Raises:
        ValidationError: If the payload is malformed or from a newer version
    """
    if isinstance(payload, list):
        tabs = []
        for idx, item in enumerate(payload, start=1):
            if not isinstance(item, dict):
                raise ValidationError("Legacy tab entry is not an object")
            tabs.append(
                QueryTab(
                    id=_new_id(),
                    name=str(item.get("title") or f"Query {idx}"),
                    sql_text=str(item.get("content", "")),
                )
            )
        return TabsSnapshot(tabs=tabs, active_tab_id=tabs[0].id if tabs else None)

    if not isinstance(payload, dict):
        raise ValidationError("Tab state must be a JSON object")

    version = payload.get("version")
    if version != STATE_VERSION:
        raise ValidationError(f"Unsupported tab state version: {version}")

    tabs = [QueryTab.from_dict(item) for item in payload.get("tabs", [])]
    return TabsSnapshot(tabs=tabs, active_tab_id=payload.get("active_tab_id"))


class JsonTabStore:
    """Tab state as a JSON file (default: ~/.filequery_state)"""

    def __init__(self, path: Optional[Union[str, Path]] = None):
        self.path = Path(path) if path else Path.home() / ".filequery_state"

    def load(self) -> Optional[TabsSnapshot]:
        if not self.path.exists():
            return None
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValidationError(f"Corrupt tab state in {self.path}: {e}") from e
        return migrate_state(payload)

    def save(self, snapshot: TabsSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(snapshot.to_dict(), indent=2), encoding="utf-8")


class MemoryTabStore:
    """Tab state kept in memory"""

    def __init__(self, snapshot: Optional[TabsSnapshot] = None):
        self.payload: Optional[Dict[str, Any]] = snapshot.to_dict() if snapshot else None

    def load(self) -> Optional[TabsSnapshot]:
        return migrate_state(self.payload) if self.payload is not None else None

    def save(self, snapshot: TabsSnapshot) -> None:
        self.payload = snapshot.to_dict()
