from __future__ import annotations

import subprocess
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parents[2] / "tools"))

from depcheck import find_violations

SCRIPT_PATH = Path(__file__).resolve().parents[2] / "tools" / "depcheck.py"


def test_depcheck_fails_on_forbidden_import(tmp_path: Path) -> None:
    domain_dir = tmp_path / "domain"
    domain_dir.mkdir(parents=True, exist_ok=True)

    violating_file = domain_dir / "model.py"
    violating_file.write_text("import sqlalchemy\n", encoding="utf-8")

    result = subprocess.run(
        [sys.executable, str(SCRIPT_PATH), "--path", str(domain_dir)],
        capture_output=True,
        text=True,
        check=False,
    )

    combined_output = f"{result.stdout}\n{result.stderr}"
    assert result.returncode != 0
    assert "sqlalchemy" in combined_output
    assert str(violating_file) in combined_output


def test_domain_may_not_reach_into_outer_layers(tmp_path: Path) -> None:
    model = tmp_path / "entities.py"
    model.write_text(
        "from pydantic import BaseModel\n"
        "from rsv.infrastructure.db.session import get_engine\n"
        "from rsv.domain.common.ids import TableId\n",
        encoding="utf-8",
    )

    violations = find_violations([model], layer="domain")

    assert [violation.module for violation in violations] == [
        "pydantic",
        "rsv.infrastructure.db.session",
    ]


def test_application_layer_may_use_pydantic_but_not_frameworks(tmp_path: Path) -> None:
    use_case = tmp_path / "use_case.py"
    use_case.write_text(
        "from pydantic import BaseModel\nfrom fastapi import APIRouter\nimport httpx\n",
        encoding="utf-8",
    )

    violations = find_violations([use_case], layer="application")

    assert [violation.module for violation in violations] == ["fastapi", "httpx"]


def test_repository_layers_pass() -> None:
    result = subprocess.run(
        [sys.executable, str(SCRIPT_PATH)],
        capture_output=True,
        text=True,
        check=False,
    )

    assert result.returncode == 0, result.stdout
    assert "depcheck passed" in result.stdout
