"""Local quote collection with its persisted image and category index."""

import json
import random
import threading
from dataclasses import replace
from typing import Any, Iterable, List, Optional, Sequence, Union

from pydantic import ValidationError as PydanticValidationError

from .database import SessionSlots, SlotRepository
from .errors import ParseError, PersistenceError, ValidationError
from .models import ImportResult, Record, RecordOrigin
from ..utils.logging import get_logger, log_duration


QUOTES_KEY = "quotes"
LAST_CATEGORY_KEY = "lastSelectedCategory"
LAST_QUOTE_KEY = "lastQuote"

ALL_CATEGORIES = "all"
EXPORT_FILENAME = "quotes.json"

DEFAULT_SEED = [
    ("The only way to do great work is to love what you do.", "Inspiration"),
    ("Innovation distinguishes between a leader and a follower.", "Technology"),
    ("Strive not to be a success, but rather to be of value.", "Wisdom"),
    ("The mind is everything. What you think you become.", "Philosophy"),
    ("Your time is limited, so don't waste it living someone else's life.", "Life"),
]


def default_seed() -> List[Record]:
    """Built-in quotes used when no persisted collection exists."""
    return [Record(text=text, category=category) for text, category in DEFAULT_SEED]


def _copy_record(record: Record) -> Record:
    return replace(record, extra=dict(record.extra))


class RecordStore:
    """Ordered, append-only quote collection.

    The collection is hydrated once from the ``quotes`` slot and written back
    in full after every mutation. The category index is rebuilt from scratch
    whenever records are appended.
    """

    def __init__(
        self,
        slots: SlotRepository,
        seed: Optional[Sequence[Record]] = None,
        session_slots: Optional[SessionSlots] = None,
        category_case_sensitive: bool = True
    ):
        """Initialize an empty store; call ``load`` to hydrate it.

        Args:
            slots: Durable slot repository
            seed: Fallback collection when nothing valid is persisted
            session_slots: Slots cleared when the session ends
            category_case_sensitive: Whether category filtering matches case
        """
        self.slots = slots
        self.seed = [_copy_record(r) for r in (seed if seed is not None else default_seed())]
        self.session_slots = session_slots or SessionSlots()
        self.category_case_sensitive = category_case_sensitive
        self.logger = get_logger(self.__class__.__name__)

        self._records: List[Record] = []
        self._categories: List[str] = []
        self._lock = threading.RLock()

    @classmethod
    def open(cls, slots: SlotRepository, **kwargs) -> "RecordStore":
        """Create a store and hydrate it from persisted state."""
        store = cls(slots, **kwargs)
        store.load()
        return store

    @property
    def records(self) -> List[Record]:
        with self._lock:
            return list(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def load(self) -> List[Record]:
        """Read the persisted collection, falling back to the seed set.

        Never raises: a missing, unreadable or malformed slot, or an empty
        array, all result in the seed collection.
        """
        try:
            records = self._read_persisted()
        except (PersistenceError, ParseError) as e:
            self.logger.warning("Persisted quotes unusable, using seed", error=str(e))
            records = None

        if not records:
            records = [_copy_record(r) for r in self.seed]
            self.logger.info("Loaded seed quotes", count=len(records))
        else:
            self.logger.info("Loaded persisted quotes", count=len(records))

        with self._lock:
            self._records = records
            self._recompute_categories()
            return list(self._records)

    def _read_persisted(self) -> Optional[List[Record]]:
        """Parse the ``quotes`` slot.

        Returns:
            Records in persisted order, or None if the slot was never written

        Raises:
            PersistenceError: If the slot cannot be read
            ParseError: If the slot is not a JSON array of valid quote objects
        """
        raw = self.slots.get(QUOTES_KEY)
        if raw is None:
            return None

        try:
            data = json.loads(raw)
        except json.JSONDecodeError as e:
            raise ParseError(f"Persisted quotes are not valid JSON: {e}") from e

        if not isinstance(data, list):
            raise ParseError(f"Persisted quotes must be an array, got {type(data).__name__}")

        records = []
        for index, item in enumerate(data):
            try:
                records.append(Record.from_dict(item))
            except PydanticValidationError as e:
                raise ParseError(f"Invalid persisted quote at index {index}") from e
        return records

    def _serialize(self, **dump_options) -> str:
        try:
            return json.dumps([r.to_dict() for r in self._records], ensure_ascii=False, **dump_options)
        except (TypeError, ValueError) as e:
            raise PersistenceError(f"Quotes cannot be serialized: {e}") from e

    def save(self) -> bool:
        """Overwrite the persisted slot with the full collection.

        Returns:
            True if the write succeeded. Serialization and storage failures
            are logged and swallowed; the in-memory collection stays
            authoritative.
        """
        with self._lock:
            count = len(self._records)
            try:
                self.slots.set(QUOTES_KEY, self._serialize())
            except PersistenceError as e:
                self.logger.error("Failed to save quotes", error=str(e), count=count)
                return False

        self.logger.debug("Quotes saved", count=count)
        return True

    def add(self, record: Record) -> bool:
        """Append a single quote and persist.

        Returns:
            False without mutating anything if ``text`` or ``category`` is
            empty after trimming whitespace, True otherwise
        """
        text = record.text.strip() if isinstance(record.text, str) else ""
        category = record.category.strip() if isinstance(record.category, str) else ""

        if not text or not category:
            self.logger.info("Rejected quote with missing fields")
            return False

        with self._lock:
            self._records.append(replace(record, text=text, category=category, extra=dict(record.extra)))
            self._recompute_categories()
            self.save()

        self.logger.info("Quote added", category=category, origin=record.origin.value)
        return True

    def merge_remote(self, incoming: Iterable[Record]) -> int:
        """Append incoming quotes whose text is not already present.

        Records added earlier in the same call count as present, so the
        first of several identical texts wins. Does not persist.

        Returns:
            Number of records appended
        """
        added = 0
        with self._lock:
            known_texts = {r.text for r in self._records}
            for record in incoming:
                if record.text in known_texts:
                    continue
                self._records.append(_copy_record(record))
                known_texts.add(record.text)
                added += 1

            if added:
                self._recompute_categories()

        self.logger.debug("Merged remote quotes", added=added)
        return added

    def categories(self) -> List[str]:
        """Distinct categories, case-sensitive, ascending."""
        with self._lock:
            return list(self._categories)

    def filter_by_category(self, category: Optional[str]) -> List[Record]:
        """Quotes in ``category``, or the whole collection for ``"all"``."""
        with self._lock:
            if category is None or category == ALL_CATEGORIES:
                return list(self._records)
            if self.category_case_sensitive:
                return [r for r in self._records if r.category == category]
            wanted = category.casefold()
            return [r for r in self._records if r.category.casefold() == wanted]

    def random_record(self, category: Optional[str] = None, rng: Optional[random.Random] = None) -> Optional[Record]:
        """Pick a random quote from the filtered view."""
        candidates = self.filter_by_category(category)
        if not candidates:
            return None
        return (rng or random).choice(candidates)

    @log_duration
    def import_records(self, payload: Union[str, bytes, List[Any]]) -> ImportResult:
        """Append every valid quote from an imported JSON array.

        Unlike ``merge_remote`` no dedup is applied: an imported quote is
        appended even if an identical one already exists.

        Raises:
            ParseError: If the payload is not valid JSON or not an array
            ValidationError: If no element is a valid quote
        """
        if isinstance(payload, (str, bytes)):
            try:
                data = json.loads(payload)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                raise ParseError(f"Invalid JSON: {e}") from e
        else:
            data = payload

        if not isinstance(data, list):
            raise ParseError("JSON must be an array")

        valid: List[Record] = []
        rejected = 0
        for item in data:
            try:
                valid.append(Record.from_dict(item, RecordOrigin.LOCAL))
            except PydanticValidationError:
                rejected += 1

        if not valid:
            raise ValidationError("No valid quotes found in imported file")

        with self._lock:
            self._records.extend(valid)
            self._recompute_categories()
            self.save()

        self.logger.info("Quotes imported", imported=len(valid), rejected=rejected)
        return ImportResult(imported=len(valid), rejected=rejected)

    def export_json(self) -> str:
        """Pretty-printed JSON array mirroring the persisted collection.

        Raises:
            PersistenceError: If a quote carries a value JSON cannot encode
        """
        with self._lock:
            return self._serialize(indent=2)

    @property
    def last_selected_category(self) -> Optional[str]:
        try:
            return self.slots.get(LAST_CATEGORY_KEY)
        except PersistenceError as e:
            self.logger.warning("Failed to read filter preference", error=str(e))
            return None

    @last_selected_category.setter
    def last_selected_category(self, category: str) -> None:
        try:
            self.slots.set(LAST_CATEGORY_KEY, category)
        except PersistenceError as e:
            self.logger.warning("Failed to save filter preference", error=str(e))

    def restore_selected_category(self) -> str:
        """Last applied filter if it still names a category, else ``"all"``."""
        saved = self.last_selected_category
        if saved and saved in self.categories():
            return saved
        return ALL_CATEGORIES

    @property
    def last_displayed(self) -> Optional[Record]:
        raw = self.session_slots.get(LAST_QUOTE_KEY)
        if raw is None:
            return None
        try:
            return Record.from_dict(json.loads(raw))
        except (json.JSONDecodeError, PydanticValidationError):
            return None

    @last_displayed.setter
    def last_displayed(self, record: Optional[Record]) -> None:
        if record is None:
            self.session_slots.set(LAST_QUOTE_KEY, None)
            return
        try:
            self.session_slots.set(LAST_QUOTE_KEY, json.dumps(record.to_dict(), ensure_ascii=False))
        except (TypeError, ValueError) as e:
            self.logger.warning("Failed to remember displayed quote", error=str(e))

    def close(self) -> None:
        """End the session, dropping session-scoped slots."""
        self.session_slots.clear()

    def _recompute_categories(self) -> None:
        self._categories = sorted({r.category for r in self._records})
