import json
from pathlib import Path

from app.main import app


def test_openapi_paths_snapshot():
    snapshot_path = Path(__file__).parent / "snapshots" / "openapi_paths_snapshot.json"
    expected_paths = json.loads(snapshot_path.read_text(encoding="utf-8"))
    actual_paths = sorted(app.openapi()["paths"].keys())
    assert actual_paths == expected_paths


def test_settlement_errors_are_documented_on_review_endpoints():
    schema = app.openapi()
    approve = schema["paths"]["/admin/payouts/{payout_id}/approve"]["post"]
    assert {"403", "404", "409"} <= set(approve["responses"].keys())

    tag_names = {tag["name"] for tag in schema.get("tags", [])}
    assert {"sellers", "orders", "payouts", "admin payouts", "commissions"} <= tag_names
