"""Controller wiring user actions to the store, sync engine and view."""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import List, Optional, Union

from .notifications import NotificationSink, Severity
from .sync_engine import SyncEngine, SyncResult
from ..store.errors import ParseError, PersistenceError, ValidationError
from ..store.models import ImportResult, Record
from ..store.record_store import ALL_CATEGORIES, EXPORT_FILENAME, RecordStore
from ..utils.logging import get_logger


MISSING_FIELDS_MESSAGE = "Please fill in both the quote and its category."
ADDED_LOCALLY_MESSAGE = "New quote added locally!"
EMPTY_STORE_MESSAGE = "No quotes available. Add one!"
NO_VALID_IMPORT_MESSAGE = "No valid quotes found in imported file."
EXPORT_FAILED_MESSAGE = "Export failed. See logs for details."


class QuoteView(ABC):
    """Output port for whatever presents quotes to the user."""

    @abstractmethod
    def render_quote(self, record: Record) -> None:
        pass

    @abstractmethod
    def render_message(self, message: str) -> None:
        pass

    @abstractmethod
    def render_categories(self, categories: List[str], selected: str) -> None:
        pass


class NullView(QuoteView):
    """View that discards everything, for headless sessions."""

    def render_quote(self, record: Record) -> None:
        pass

    def render_message(self, message: str) -> None:
        pass

    def render_categories(self, categories: List[str], selected: str) -> None:
        pass


class QuoteController:
    """Glue between user actions and the quote core.

    Failures are reported through the notifier; no method raises to the
    caller for a user-level error.
    """

    def __init__(
        self,
        store: RecordStore,
        engine: SyncEngine,
        notifier: NotificationSink,
        view: Optional[QuoteView] = None
    ):
        self.store = store
        self.engine = engine
        self.notifier = notifier
        self.view = view or NullView()
        self.logger = get_logger(self.__class__.__name__)

        self.selected_category = store.restore_selected_category()
        engine.add_refresh_listener(self.refresh)

    def add_quote(self, text: str, category: str) -> bool:
        """Add a quote locally, then offer it to the server in the background."""
        record = Record(text=text or "", category=category or "")
        if not self.store.add(record):
            self.notifier.display(MISSING_FIELDS_MESSAGE, Severity.ERROR)
            return False

        added = self.store.records[-1]
        self.engine.push(added)

        self.render_categories()
        self.view.render_message(ADDED_LOCALLY_MESSAGE)
        return True

    def show_random_quote(self) -> Optional[Record]:
        """Display a random quote under the current filter."""
        record = self.store.random_record(self.selected_category)

        if record is None:
            if self.selected_category == ALL_CATEGORIES:
                self.view.render_message(EMPTY_STORE_MESSAGE)
            else:
                self.view.render_message(f'No quotes found in category: "{self.selected_category}"')
            return None

        self.store.last_displayed = record
        self.view.render_quote(record)
        return record

    def apply_filter(self, category: str) -> Optional[Record]:
        """Switch the category filter, remember it, and show a quote from it."""
        self.selected_category = category or ALL_CATEGORIES
        self.store.last_selected_category = self.selected_category
        return self.show_random_quote()

    def render_categories(self) -> List[str]:
        """Re-render the category list, keeping the filter if it still exists."""
        categories = self.store.categories()
        if self.selected_category != ALL_CATEGORIES and self.selected_category not in categories:
            self.selected_category = ALL_CATEGORIES
        self.view.render_categories(categories, self.selected_category)
        return categories

    def refresh(self) -> None:
        """Redraw after the store changed underneath the view."""
        self.render_categories()
        self.show_random_quote()

    def import_file(self, source: Union[str, Path, bytes]) -> Optional[ImportResult]:
        """Import quotes from a JSON file.

        Args:
            source: Path of the file, or its raw contents as bytes (an upload)

        Returns:
            ImportResult on success, None if the import was rejected
        """
        try:
            if isinstance(source, bytes):
                payload = source
            else:
                payload = Path(source).read_bytes()
            result = self.store.import_records(payload)
        except ValidationError:
            self.notifier.display(NO_VALID_IMPORT_MESSAGE, Severity.ERROR)
            return None
        except (ParseError, OSError) as e:
            self.logger.error("Import failed", error=str(e))
            self.notifier.display(f"Failed to import JSON: {e}", Severity.ERROR)
            return None

        self.render_categories()
        self.notifier.display(f"Imported {result.imported} quotes successfully!", Severity.SUCCESS)
        self.show_random_quote()
        return result

    def export_file(self, directory: Union[str, Path]) -> Optional[Path]:
        """Write the full collection to ``quotes.json`` in ``directory``."""
        target = Path(directory) / EXPORT_FILENAME
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(self.store.export_json(), encoding="utf-8")
        except (OSError, PersistenceError) as e:
            self.logger.error("Export failed", path=str(target), error=str(e))
            self.notifier.display(EXPORT_FAILED_MESSAGE, Severity.ERROR)
            return None

        self.logger.info("Quotes exported", path=str(target), count=len(self.store))
        return target

    async def sync_now(self) -> SyncResult:
        """Manually trigger a pull, subject to the same single-flight guard."""
        return await self.engine.pull()
