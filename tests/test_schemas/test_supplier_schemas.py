"""Tests for supplier and user schemas."""

from app.schemas.supplier import RowOutcome, RowResult, UploadReport
from app.schemas.user import ActingUser


def row(n: int, outcome: RowOutcome) -> RowResult:
    return RowResult(row_number=n, company=f"Company {n}", outcome=outcome)


class TestUploadReport:
    def test_counts(self):
        report = UploadReport(
            rows=[
                row(1, RowOutcome.INSERTED),
                row(2, RowOutcome.INSERTED),
                row(3, RowOutcome.REACTIVATED),
                row(4, RowOutcome.SKIPPED_INVALID),
                row(5, RowOutcome.SKIPPED_DUPLICATE),
            ]
        )

        assert report.inserted == 2
        assert report.reactivated == 1
        assert report.skipped == 2
        assert report.nothing_uploaded is False
        assert report.message == "Upload completed. Inserted: 2, Reactivated: 1, Skipped: 2"

    def test_all_skipped(self):
        report = UploadReport(rows=[row(1, RowOutcome.SKIPPED_DUPLICATE)])

        assert report.nothing_uploaded is True
        assert report.message == "Nothing uploaded: all 1 rows were skipped"

    def test_serialized_fields(self):
        report = UploadReport(rows=[row(1, RowOutcome.INSERTED)], stale_product_ids=["p-1"])

        dumped = report.model_dump(by_alias=True, mode="json")

        assert dumped["staleProductIds"] == ["p-1"]
        assert dumped["nothingUploaded"] is False
        assert dumped["rows"][0]["rowNumber"] == 1
        assert dumped["rows"][0]["outcome"] == "inserted"


class TestActingUser:
    def test_users_api_payload(self):
        user = ActingUser.model_validate(
            {
                "user_id": "u-1",
                "Firstname": "Dana",
                "ReferenceID": "REF-001",
                "Department": "Sales",
            }
        )

        assert user.first_name == "Dana"
        assert user.reference_id == "REF-001"
        assert user.role == ""

    def test_reference_defaults_to_empty(self):
        assert ActingUser(user_id="u-2").reference_id == ""
