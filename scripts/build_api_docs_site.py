from __future__ import annotations

import json
from pathlib import Path
import sys

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from stockbar.main import app
SITE_API_DIR = REPO_ROOT / "docs" / "site" / "api"


def build(output_dir: Path = SITE_API_DIR) -> Path:
    output_dir.mkdir(parents=True, exist_ok=True)
    target = output_dir / "openapi.json"
    target.write_text(
        json.dumps(app.openapi(), ensure_ascii=False, indent=2),
        encoding="utf-8",
    )
    return target


def main() -> None:
    print(f"[APP][openapi_written] path={build()}", flush=True)


if __name__ == "__main__":
    main()
