"""사용자 홈의 앱 설정.

서고와 무관한 설정을 ~/.wenbai-annotator/config.json 하나에 둔다.

    {"recent_libraries": [{"path": ..., "name": ..., "last_used": ...}, ...]}

serve 명령에서 --library를 빼면 recent_libraries 중 아직 서고로 남아 있는
첫 항목을 연다.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_DIR = Path.home() / ".wenbai-annotator"
MAX_RECENT_LIBRARIES = 10


def config_path() -> Path:
    return CONFIG_DIR / "config.json"


def load_app_config() -> dict:
    """설정 파일을 읽는다. 없거나 읽을 수 없으면 빈 설정."""
    path = config_path()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        return {}
    except (json.JSONDecodeError, OSError) as e:
        logger.warning("%s 무시 (%s)", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def save_app_config(config: dict) -> None:
    path = config_path()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(config, ensure_ascii=False, indent=2) + "\n", encoding="utf-8")


def remember_library(path: str | Path, name: str | None = None) -> None:
    """연 서고를 최근 목록 맨 앞에 기록한다. 같은 경로의 이전 항목은 지운다."""
    resolved = Path(path).resolve()
    entry = {
        "path": str(resolved),
        "name": name or resolved.name,
        "last_used": datetime.now(timezone.utc).isoformat(),
    }
    config = load_app_config()
    others = [
        r for r in config.get("recent_libraries", []) if r.get("path") != entry["path"]
    ]
    config["recent_libraries"] = ([entry] + others)[:MAX_RECENT_LIBRARIES]
    save_app_config(config)


def get_recent_libraries() -> list[dict]:
    """최근 서고 (최신 순). 지금은 서고가 아닌 경로는 뺀다."""
    return [
        r
        for r in load_app_config().get("recent_libraries", [])
        if (Path(r.get("path") or "/nonexistent") / "library_manifest.json").is_file()
    ]


def get_last_library() -> str | None:
    recent = get_recent_libraries()
    return recent[0]["path"] if recent else None
