"""
Patch credentials into exported datasource files.

Exports never contain secrets, so a datasource that needs a password must
get ``secureJsonData.password`` added before it is imported elsewhere.
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional

from .documents import dump_document, parse_document, set_datasource_password
from .errors import ConfigurationError, ItemValidationError

logger = logging.getLogger(__name__)


def add_datasource_password(
    input_file: Path,
    password: str,
    output_file: Optional[Path] = None,
) -> Dict[str, Any]:
    """Set ``secureJsonData.password`` and write the result.

    Writes to ``output_file`` or, when not given, replaces ``input_file``.
    The file is written through a temporary file in the same directory, so
    a failure never leaves a half-written document behind.
    """
    input_file = Path(input_file)
    output_file = Path(output_file) if output_file else input_file

    if not password:
        raise ConfigurationError("Password is required. Use -p option.")
    if not input_file.is_file():
        raise ConfigurationError(f"Input file does not exist: {input_file}")

    try:
        datasource = parse_document(input_file.read_text(encoding="utf-8"), str(input_file))
    except ItemValidationError as e:
        raise ConfigurationError(f"Input file is not valid JSON: {input_file}") from e

    logger.debug(f"Datasource name: {datasource.get('name', 'unknown')}")
    patched = set_datasource_password(datasource, password)
    text = dump_document(patched)

    # Must still round-trip; the password is arbitrary user text
    if json.loads(text) != patched:
        raise ConfigurationError("Output is not valid JSON after password addition")

    _atomic_write(output_file, text)
    logger.debug(f"Wrote patched datasource to {output_file}")
    return patched


def _atomic_write(path: Path, text: str):
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp_name, path)
    except OSError as e:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise ConfigurationError(f"Failed to write output file: {path}: {e}") from e
