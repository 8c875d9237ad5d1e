"""Seed file loader for JSON/YAML quote collections."""

import json
import yaml
from pathlib import Path
from typing import List, Union

from pydantic import ValidationError as PydanticValidationError

from ..store.models import QuotePayload, Record, RecordOrigin
from ..utils.logging import get_logger


logger = get_logger("config.loader")


class ConfigurationError(Exception):
    """Raised when configuration loading fails."""
    pass


def load_seed_records(file_path: Union[str, Path]) -> List[Record]:
    """Load a seed quote collection from a JSON or YAML file.

    The file must contain a list of objects with non-empty ``text`` and
    ``category`` strings. Any other keys are kept as opaque payload.

    Args:
        file_path: Path to the seed file

    Returns:
        List of local-origin records in file order

    Raises:
        ConfigurationError: If the file cannot be read or validated
    """
    file_path = Path(file_path)

    if not file_path.exists():
        raise ConfigurationError(f"Seed file not found: {file_path}")

    logger.info("Loading seed quotes from file", file_path=str(file_path))

    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            if file_path.suffix.lower() in ['.yaml', '.yml']:
                data = yaml.safe_load(f)
            elif file_path.suffix.lower() == '.json':
                data = json.load(f)
            else:
                raise ConfigurationError(f"Unsupported file format: {file_path.suffix}")
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML format: {e}")
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Invalid JSON format: {e}")
    except OSError as e:
        raise ConfigurationError(f"Failed to read seed file: {e}")

    if not isinstance(data, list) or not data:
        raise ConfigurationError("Seed file must contain a non-empty list of quotes")

    records = []
    for index, item in enumerate(data):
        try:
            payload = QuotePayload.model_validate(item)
        except PydanticValidationError as e:
            raise ConfigurationError(f"Invalid seed quote at index {index}: {e}")
        records.append(payload.to_record(RecordOrigin.LOCAL))

    logger.info("Seed quotes loaded", count=len(records))
    return records
