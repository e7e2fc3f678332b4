"""Reading module descriptors produced by an external parser.

The descriptor document is JSON, either an object with a ``modules`` list
or a bare list::

    {
      "modules": [
        {
          "path": "lib/domain/user.dart",
          "layer": "domain",
          "imports": [
            {"target": "package:app/data/user_model.dart", "line": 3, "column": 1}
          ]
        }
      ]
    }

``layer`` is optional. An import without ``line`` is passed through without
a location and later skipped by the graph builder.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Optional, Union

from .exceptions import DescriptorError
from .graph.models import ImportRecord, ModuleDescriptor
from .logging_config import get_logger
from .models import SourceSpan

logger = get_logger(__name__)


def load_descriptors(source: Union[str, Path, dict, list]) -> list[ModuleDescriptor]:
    """Load module descriptors from a JSON file or an already-parsed document.

    Args:
        source: Path to a JSON file, or the decoded document itself

    Returns:
        Descriptors in document order; malformed modules and imports are
        skipped with a warning

    Raises:
        DescriptorError: If the file cannot be read or is not a descriptor document
    """
    if isinstance(source, (str, Path)):
        document = _read_json(Path(source))
        label = str(source)
    else:
        document = source
        label = "<document>"

    if isinstance(document, dict):
        if "modules" not in document:
            raise DescriptorError(label, "expected a 'modules' list")
        modules = document["modules"]
    else:
        modules = document

    if not isinstance(modules, list):
        raise DescriptorError(label, f"expected a list of modules, got {type(modules).__name__}")

    descriptors: list[ModuleDescriptor] = []
    for index, entry in enumerate(modules):
        descriptor = _parse_module(entry, index)
        if descriptor is not None:
            descriptors.append(descriptor)

    logger.debug(f"Loaded {len(descriptors)} of {len(modules)} module descriptors from {label}")
    return descriptors


def _read_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError:
        raise DescriptorError(str(path), "file not found") from None
    except json.JSONDecodeError as e:
        raise DescriptorError(str(path), f"invalid JSON: {e}") from None
    except (OSError, UnicodeDecodeError) as e:
        raise DescriptorError(str(path), str(e)) from None


def _parse_module(entry: Any, index: int) -> Optional[ModuleDescriptor]:
    if not isinstance(entry, dict):
        logger.warning(f"Skipping module #{index + 1}: expected an object, got {type(entry).__name__}")
        return None

    path = entry.get("path")
    if not isinstance(path, str) or not path.strip():
        logger.warning(f"Skipping module #{index + 1}: missing 'path'")
        return None

    layer = entry.get("layer")
    if layer is not None and not isinstance(layer, str):
        logger.warning(f"{path}: ignoring non-string layer {layer!r}")
        layer = None

    raw_imports = entry.get("imports", [])
    if not isinstance(raw_imports, list):
        logger.warning(f"Skipping module {path}: 'imports' must be a list")
        return None

    imports: list[ImportRecord] = []
    for position, raw in enumerate(raw_imports):
        record = _parse_import(raw, path, position)
        if record is not None:
            imports.append(record)

    return ModuleDescriptor(path=path, imports=tuple(imports), layer=layer)


def _parse_import(raw: Any, module_path: str, position: int) -> Optional[ImportRecord]:
    if not isinstance(raw, dict):
        logger.warning(f"{module_path}: skipping import #{position + 1}: expected an object")
        return None

    target = raw.get("target")
    if not isinstance(target, str) or not target.strip():
        logger.warning(f"{module_path}: skipping import #{position + 1}: missing 'target'")
        return None

    line = raw.get("line")
    if line is None:
        return ImportRecord(target=target)

    column = raw.get("column", 1)
    if not _is_position(line) or not _is_position(column):
        logger.warning(
            f"{module_path}: skipping import #{position + 1}: "
            f"invalid position line={line!r} column={column!r}"
        )
        return None

    end_line = raw.get("end_line")
    end_column = raw.get("end_column")
    location = SourceSpan(
        path=module_path,
        line=line,
        column=column,
        end_line=end_line if _is_position(end_line) else None,
        end_column=end_column if _is_position(end_column) else None,
    )
    return ImportRecord(target=target, location=location)


def _is_position(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value >= 1
