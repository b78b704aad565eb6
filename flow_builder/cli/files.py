"""Reading and writing flow files."""

import json
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml

from ..exceptions import FlowFileError
from ..models import Block, blocks_from_dicts, blocks_to_dicts


def load_flow_file(path: Union[str, Path], lenient: bool = False) -> List[Block]:
    """
    Load a block list from a JSON or YAML file.

    The document is either a list of blocks or a mapping with a
    ``blocks`` key (an exported bot or template). With ``lenient``,
    unrecognised block types are kept for the preview to skip.
    """
    path = Path(path)
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as e:
        raise FlowFileError(f"Cannot read {path}: {e}", path=str(path))

    try:
        if path.suffix.lower() == ".json":
            document = json.loads(text)
        else:
            document = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise FlowFileError(f"Cannot parse {path}: {e}", path=str(path))

    if isinstance(document, dict):
        document = document.get("blocks")

    if not isinstance(document, list):
        raise FlowFileError(f"{path} does not contain a block list", path=str(path))

    try:
        return blocks_from_dicts(document, lenient=lenient)
    except KeyError as e:
        raise FlowFileError(f"Block is missing field {e} in {path}", path=str(path))
    except (ValueError, TypeError, AttributeError) as e:
        raise FlowFileError(f"Invalid block in {path}: {e}", path=str(path))


def dump_blocks(blocks: List[Block], path: Union[str, Path]) -> None:
    """Write blocks as ``{"blocks": [...]}``, YAML unless the suffix is .json."""
    path = Path(path)
    document: Dict[str, Any] = {"blocks": blocks_to_dicts(blocks)}

    if path.suffix.lower() == ".json":
        path.write_text(json.dumps(document, indent=2, ensure_ascii=False), encoding="utf-8")
    else:
        path.write_text(
            yaml.safe_dump(document, sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
