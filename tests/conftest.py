"""Pytest configuration: import the package from src/ without installing it."""

import os
import sys
from pathlib import Path

_SRC_ROOT = Path(__file__).resolve().parents[1] / "src"
if str(_SRC_ROOT) not in sys.path:
    sys.path.insert(0, str(_SRC_ROOT))

# 既定値のまま厳格モードで設定を読み込む。個別テストは monkeypatch で上書きする。
os.environ.setdefault("STRICT_MODE", "true")
