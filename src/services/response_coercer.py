"""
Extrai JSON da resposta em linguagem natural do modelo.

O modelo costuma embrulhar o JSON em blocos ``` ou em frases de cortesia;
aqui removemos os blocos, achamos o primeiro literal do formato pedido e
devolvemos o valor já parseado. Qualquer falha vira MalformedResponse.
"""
import json
import re
from typing import Any, Dict, Iterable, Literal, Optional

from src.services.errors import MalformedResponse

Shape = Literal["array", "object"]

_FENCE_RE = re.compile(r"```[\w+-]*[ \t]*")
_BRACKETS = {"array": ("[", "]", list), "object": ("{", "}", dict)}


def strip_fences(raw_text: str) -> str:
    return _FENCE_RE.sub("", raw_text.strip()).strip()


def coerce(raw_text: Optional[str], shape: Shape) -> Any:
    if shape not in _BRACKETS:
        raise ValueError(f"Unknown shape: {shape}")
    if not raw_text:
        raise MalformedResponse(detail="Empty completion")

    opener, closer, expected_type = _BRACKETS[shape]
    text = strip_fences(raw_text)

    # 1) Match guloso: do primeiro abre ao último fecha
    first, last = text.find(opener), text.rfind(closer)
    if first == -1 or last <= first:
        raise MalformedResponse(detail=f"No JSON {shape} found in completion")

    try:
        value = json.loads(text[first:last + 1])
    except json.JSONDecodeError as e:
        raise MalformedResponse(detail=f"Could not parse JSON {shape} from completion: {e}") from e

    if not isinstance(value, expected_type):
        raise MalformedResponse(detail=f"Expected JSON {shape}, got {type(value).__name__}")
    return value


def pick(item: Dict[str, Any], aliases: Iterable[str], default: Any = None) -> Any:
    """Primeiro valor não vazio entre os nomes aceitos para o campo."""
    for key in aliases:
        value = item.get(key)
        if value not in (None, ""):
            return value
    return default
