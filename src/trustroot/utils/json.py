import json
from typing import Any


def json_pretty(obj: Any) -> str:
    return json.dumps(obj, indent=2, ensure_ascii=False)
