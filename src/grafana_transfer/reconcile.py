"""
Grafana Transfer - Batch import reconciliation

Submits a batch of exported datasource or dashboard documents to a Grafana
instance and classifies every response. One bad item never stops the
batch: invalid JSON, transport failures and error statuses are recorded as
FAILED results and the loop moves on to the next document.

Processing is strictly sequential, so the order of results (and which of
two colliding documents wins) is the input order.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional

from .client import ApiResponse, GrafanaClient
from .documents import (
    DashboardDocument,
    FolderRef,
    parse_document,
    strip_datasource_ids,
)
from .errors import (
    ConfigurationError,
    EmptyInputError,
    ItemValidationError,
    TransportError,
)

logger = logging.getLogger(__name__)


class ImportKind(Enum):
    """What a batch contains."""
    DATASOURCE = "datasource"
    DASHBOARD = "dashboard"


class ImportOutcome(Enum):
    """Result of submitting one document."""
    CREATED = "created"
    ALREADY_EXISTS = "already_exists"
    FAILED = "failed"


# HTTP status -> outcome; anything not listed is FAILED
STATUS_OUTCOMES: Dict[ImportKind, Dict[int, ImportOutcome]] = {
    ImportKind.DATASOURCE: {
        200: ImportOutcome.CREATED,
        201: ImportOutcome.CREATED,
        409: ImportOutcome.ALREADY_EXISTS,
    },
    ImportKind.DASHBOARD: {
        200: ImportOutcome.CREATED,
        412: ImportOutcome.ALREADY_EXISTS,
    },
}


@dataclass
class ImportItem:
    """One source document, either read from a file or given as text."""
    source: str
    text: Optional[str] = None
    path: Optional[Path] = None

    @classmethod
    def from_path(cls, path: Path) -> "ImportItem":
        return cls(source=path.name, path=path)

    def read(self) -> str:
        if self.text is None and self.path is not None:
            self.text = self.path.read_text(encoding="utf-8")
        return self.text or ""


@dataclass
class ImportOptions:
    """Switches for one reconciliation run."""
    kind: ImportKind
    overwrite: bool = False  # dashboards only
    preserve_folders: bool = False  # dashboards only


@dataclass
class ItemResult:
    """Outcome of one item, captured as data."""
    item: ImportItem
    outcome: ImportOutcome
    name: str = "unknown"
    status_code: Optional[int] = None
    message: str = ""
    url: Optional[str] = None
    folder_id: Optional[int] = None

    @property
    def is_failure(self) -> bool:
        return self.outcome is ImportOutcome.FAILED


@dataclass
class RunSummary:
    """Running tally of a reconciliation run."""
    kind: ImportKind
    total: int = 0
    succeeded: int = 0
    duplicate: int = 0
    failed: int = 0
    folders_created: int = 0
    results: List[ItemResult] = field(default_factory=list)

    def record(self, result: ItemResult):
        self.results.append(result)
        self.total += 1
        if result.outcome is ImportOutcome.CREATED:
            self.succeeded += 1
        elif result.outcome is ImportOutcome.ALREADY_EXISTS:
            self.duplicate += 1
        else:
            self.failed += 1

    @property
    def ok(self) -> bool:
        """Duplicates alone do not make a run unsuccessful."""
        return self.failed == 0

    @property
    def exit_code(self) -> int:
        return 0 if self.ok else 1


class FolderResolver:
    """Maps source folder UIDs to numeric folder IDs on the target.

    The cache lives for one run. A UID is looked up (and, if missing,
    created) at most once; a failed creation is remembered as ``None`` so
    later dashboards of that folder go to General without another attempt.
    """

    def __init__(self, client: GrafanaClient):
        self.client = client
        self.created = 0
        self._cache: Dict[str, Optional[int]] = {}

    def resolve(self, ref: FolderRef) -> Optional[int]:
        if ref.uid in self._cache:
            folder_id = self._cache[ref.uid]
            logger.debug(f"Using cached folder ID for {ref.uid}: {folder_id}")
            return folder_id

        folder_id = self._lookup_or_create(ref)
        self._cache[ref.uid] = folder_id
        return folder_id

    def _lookup_or_create(self, ref: FolderRef) -> Optional[int]:
        try:
            response = self.client.get_folder(ref.uid)
        except TransportError as e:
            logger.warning(f"Folder lookup for {ref.uid} failed ({e.cause}), dashboard will be imported to General folder")
            return None

        if response.ok:
            folder_id = _folder_id(response)
            logger.debug(f"Folder exists with ID: {folder_id}")
            return folder_id

        logger.debug(f"Folder does not exist, creating: {ref.display_title}")
        try:
            created = self.client.create_folder(ref.uid, ref.display_title)
        except TransportError as e:
            logger.warning(f"Failed to create folder {ref.display_title} ({e.cause}), dashboard will be imported to General folder")
            return None

        if not created.ok:
            logger.warning(
                f"Failed to create folder {ref.display_title} (HTTP {created.status_code}), "
                f"dashboard will be imported to General folder"
            )
            logger.debug(f"Folder creation response: {created.text}")
            return None

        self.created += 1
        folder_id = _folder_id(created)
        logger.debug(f"Folder created successfully with ID: {folder_id}")
        return folder_id


def _folder_id(response: ApiResponse) -> Optional[int]:
    value = response.field("id")
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# ============ Input selection ============

def collect_items(directory: Optional[Path] = None, file: Optional[Path] = None) -> List[ImportItem]:
    """Build the ordered item list from a directory XOR a single file.

    Directories are listed non-recursively; only ``*.json`` regular files
    are taken, sorted by name.
    """
    if directory is not None and file is not None:
        raise ConfigurationError("Cannot specify both a directory and a file. Use only one.")
    if directory is None and file is None:
        raise ConfigurationError("Either an input directory or an input file is required.")

    if file is not None:
        file = Path(file)
        if not file.is_file():
            raise ConfigurationError(f"Input file does not exist: {file}")
        return [ImportItem.from_path(file)]

    directory = Path(directory)
    if not directory.is_dir():
        raise ConfigurationError(f"Directory does not exist: {directory}")

    paths = sorted(p for p in directory.iterdir() if p.suffix == ".json" and p.is_file())
    if not paths:
        raise EmptyInputError(f"No JSON files found in directory: {directory}")
    return [ImportItem.from_path(p) for p in paths]


# ============ Reconciliation ============

def reconcile(
    items: Iterable[ImportItem],
    client: GrafanaClient,
    options: ImportOptions,
    on_result: Optional[Callable[[ItemResult], None]] = None,
) -> RunSummary:
    """Submit every item in order and return the tally."""
    summary = RunSummary(kind=options.kind)
    folders = FolderResolver(client)

    for item in items:
        result = _reconcile_item(item, client, options, folders)
        summary.record(result)
        if on_result:
            on_result(result)

    summary.folders_created = folders.created
    logger.info(
        f"{options.kind.value} import finished: total={summary.total} "
        f"succeeded={summary.succeeded} duplicate={summary.duplicate} failed={summary.failed}"
    )
    return summary


def _reconcile_item(item: ImportItem, client: GrafanaClient, options: ImportOptions,
                    folders: FolderResolver) -> ItemResult:
    try:
        doc = parse_document(item.read(), item.source)
    except (OSError, UnicodeDecodeError) as e:
        return ItemResult(item, ImportOutcome.FAILED, message=f"cannot read file: {e}")
    except ItemValidationError as e:
        logger.debug(str(e))
        return ItemResult(item, ImportOutcome.FAILED, message="invalid JSON")

    if options.kind is ImportKind.DATASOURCE:
        name = str(doc.get("name") or "unknown")
        payload = strip_datasource_ids(doc)
        submit = client.create_datasource
        folder_id = None
    else:
        try:
            dashboard = DashboardDocument.from_dict(doc)
        except ItemValidationError as e:
            return ItemResult(item, ImportOutcome.FAILED, message=str(e))
        name = str(dashboard.title)
        logger.debug(f"Dashboard: {dashboard.title} (UID: {dashboard.uid})")

        folder_id = None
        ref = dashboard.folder_ref if options.preserve_folders else None
        if ref is not None:
            logger.debug(f"Dashboard is in folder: {ref.title} (UID: {ref.uid})")
            folder_id = folders.resolve(ref)
        elif options.preserve_folders:
            logger.debug("Dashboard has no folder (will be imported to General folder)")

        payload = dashboard.import_payload(options.overwrite, folder_id)
        submit = client.import_dashboard

    try:
        response = submit(payload)
    except TransportError as e:
        return ItemResult(item, ImportOutcome.FAILED, name=name, message=str(e.cause),
                          folder_id=folder_id)

    return _classify(item, name, response, options.kind, folder_id)


def _classify(item: ImportItem, name: str, response: ApiResponse, kind: ImportKind,
              folder_id: Optional[int]) -> ItemResult:
    outcome = STATUS_OUTCOMES[kind].get(response.status_code, ImportOutcome.FAILED)
    result = ItemResult(item, outcome, name=name, status_code=response.status_code,
                        folder_id=folder_id)

    if outcome is ImportOutcome.CREATED:
        result.url = response.field("url")
    elif outcome is ImportOutcome.ALREADY_EXISTS:
        # Grafana's 412 carries a status such as name-exists or version-mismatch
        result.message = str(response.field("status") or response.field("message") or "")
    else:
        result.message = response.error_message()
        logger.debug(f"Full response body: {response.text}")
    return result
