from __future__ import annotations

import json
import os
import subprocess
import sys
from pathlib import Path

from nutrition_engine.scripts import match_food, validate_food_db


def test_validate_food_db_reports_rejections(tmp_path, food_records, capsys):
    broken = dict(food_records[0], id="01999", name="おにぎり", calories="abc")
    path = tmp_path / "foods.json"
    path.write_text(json.dumps(food_records + [broken], ensure_ascii=False), encoding="utf-8")

    assert validate_food_db.main([str(path)]) == 0
    assert validate_food_db.main([str(path), "--strict"]) == 2

    output = capsys.readouterr().out
    assert f"Accepted: {len(food_records)}" in output
    assert "Rejected: 1" in output
    assert "record 7: calories" in output


def test_validate_food_db_missing_file(tmp_path):
    assert validate_food_db.main([str(tmp_path / "missing.json")]) == 1


def test_match_food_json_output(monkeypatch, capsys, tmp_path, food_records):
    path = tmp_path / "foods.json"
    path.write_text(json.dumps(food_records, ensure_ascii=False), encoding="utf-8")
    monkeypatch.setattr("sys.argv", ["match_food", "りんご", "--quantity", "1個", "--json", "--database", str(path)])

    match_food.main()

    results = json.loads(capsys.readouterr().out)
    assert results[0]["id"] == "07148"
    assert results[0]["grams"] == 200
    assert results[0]["match_type"] == "exact"


def test_validate_food_db_runs_as_a_file(tmp_path, food_records):
    path = tmp_path / "foods.json"
    path.write_text(json.dumps(food_records, ensure_ascii=False), encoding="utf-8")

    completed = subprocess.run(
        [sys.executable, str(Path(validate_food_db.__file__)), str(path)],
        capture_output=True,
        encoding="utf-8",
        env={**os.environ, "PYTHONIOENCODING": "utf-8"},
        check=False,
    )
    assert completed.returncode == 0, completed.stderr
    assert f"Accepted: {len(food_records)}" in completed.stdout
