"""Tests for spreadsheet and JSON client import"""

import csv
import json
from datetime import date
from io import StringIO

import pytest

from wellness_portal.domain.clients import importer
from wellness_portal.domain.clients.service import ClientService
from wellness_portal.models import Client


def to_csv(headers, *rows):
    output = StringIO()
    writer = csv.writer(output)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(row)
    return output.getvalue()


class TestHeaderAliases:
    @pytest.mark.parametrize(
        "header,field",
        [
            ("First Name", "first_name"),
            ("firstName", "first_name"),
            ("  email address ", "email"),
            ("Phone Number", "mobile"),
            ("City/Town", "city_town"),
            ("whereDidYouHearAboutLifeArrow", "how_did_you_hear"),
            ("Shoe Size", None),
            (None, None),
        ],
    )
    def test_canonical_field(self, header, field):
        assert importer.canonical_field(header) == field


class TestNormalizeRow:
    def test_valid_row_gets_defaults_and_clean_values(self):
        record = importer.normalize_row(
            {"First Name": " Sipho ", "Last Name": "Ndlovu", "Email": "Sipho@Example.com", "Mobile": "082 123 4567"}
        )

        assert record["first_name"] == "Sipho"
        assert record["email"] == "sipho@example.com"
        assert record["mobile"] == "0821234567"
        assert record["country"] == "South Africa"
        assert record["preferred_method_of_contact"] == "Email"
        assert record["how_did_you_hear"] == "Other"
        assert record["status"] == "active"

    def test_missing_required_fields_are_listed(self):
        with pytest.raises(importer.RowError) as exc_info:
            importer.normalize_row({"First Name": "Sipho", "Email": ""})

        assert str(exc_info.value) == "Missing required fields: Last Name, Email, Mobile"

    def test_first_non_empty_spelling_wins(self):
        record = importer.normalize_row(
            {"firstName": "", "First Name": "Lindiwe", "lastName": "Khumalo", "email": "l@example.com", "phone": "0831112222"}
        )

        assert record["first_name"] == "Lindiwe"

    def test_invalid_email(self):
        with pytest.raises(importer.RowError, match="Invalid email address 'not-an-email'"):
            importer.normalize_row({"First Name": "A", "Last Name": "B", "Email": "not-an-email", "Mobile": "0821234567"})

    def test_invalid_mobile(self):
        with pytest.raises(importer.RowError, match="Invalid mobile number '12'"):
            importer.normalize_row({"First Name": "A", "Last Name": "B", "Email": "a@example.com", "Mobile": "12"})

    def test_invalid_status_lists_allowed_values(self):
        with pytest.raises(importer.RowError) as exc_info:
            importer.normalize_row(
                {"First Name": "A", "Last Name": "B", "Email": "a@example.com", "Mobile": "0821234567", "Status": "Archived"}
            )

        assert str(exc_info.value) == (
            "Invalid status 'archived'. Must be one of: active, inactive, pending-verification, suspended"
        )

    def test_status_is_case_insensitive(self):
        record = importer.normalize_row(
            {"First Name": "A", "Last Name": "B", "Email": "a@example.com", "Mobile": "0821234567", "Status": "Pending-Verification"}
        )
        assert record["status"] == "pending-verification"

    def test_date_of_birth_is_parsed(self):
        record = importer.normalize_row(
            {"First Name": "A", "Last Name": "B", "Email": "a@example.com", "Mobile": "0821234567", "Date of Birth": "1985-02-28"}
        )
        assert record["date_of_birth"] == date(1985, 2, 28)

    def test_free_text_is_escaped(self):
        record = importer.normalize_row(
            {"First Name": "A", "Last Name": "B", "Email": "a@example.com", "Mobile": "0821234567", "Notes": "<b>VIP</b>"}
        )
        assert record["notes"] == "&lt;b&gt;VIP&lt;/b&gt;"


class TestParseCsv:
    def test_errors_use_spreadsheet_row_numbers(self):
        text = to_csv(
            ["First Name", "Last Name", "Email", "Mobile"],
            ["Sipho", "Ndlovu", "sipho@example.com", "0821234567"],
            ["Thabo", "", "thabo@example.com", "0821234568"],
            ["", "", "", ""],
            ["Naledi", "Dube", "bad-email", "0821234569"],
        )

        result = importer.parse_csv(text)

        assert [r["first_name"] for r in result.records] == ["Sipho"]
        assert result.errors == [
            "Row 3: Missing required fields: Last Name",
            "Row 5: Invalid email address 'bad-email'",
        ]

    def test_byte_order_mark_is_ignored(self):
        text = "\ufeff" + to_csv(["First Name", "Last Name", "Email", "Mobile"], ["A", "B", "a@example.com", "0821234567"])

        result = importer.parse_csv(text)

        assert len(result.records) == 1
        assert result.errors == []

    def test_empty_file(self):
        result = importer.parse_csv("")

        assert result.records == []
        assert result.errors == ["The file is empty or has no header row"]

    def test_template_round_trips_through_the_importer(self):
        result = importer.parse_csv(importer.template_csv())

        assert result.errors == []
        assert result.records[0]["email"] == "john.doe@example.com"
        assert result.records[0]["city_town"] == "Johannesburg"


class TestParseJson:
    def test_array_of_objects(self):
        result = importer.parse_json(
            [
                {"firstName": "A", "lastName": "B", "email": "a@example.com", "mobile": "0821234567"},
                "not an object",
            ]
        )

        assert len(result.records) == 1
        assert result.errors == ["Row 3: Expected an object with client fields"]

    def test_non_array_is_rejected(self):
        result = importer.parse_json({"firstName": "A"})

        assert result.errors == ["Expected a JSON array of client records"]


class TestImportService:
    def test_valid_rows_are_written_and_invalid_reported(self, db):
        text = to_csv(
            ["First Name", "Last Name", "Email", "Mobile"],
            ["Sipho", "Ndlovu", "sipho@example.com", "0821234567"],
            ["Thabo", "Mokoena", "thabo@example.com", "1"],
        )

        summary = ClientService(db).import_clients(text.encode("utf-8"), "clients.csv", "text/csv")

        assert summary["imported"] == 1
        assert summary["failed"] == 1
        assert summary["errors"] == ["Row 3: Invalid mobile number '1'"]
        assert db.query(Client).count() == 1

    def test_json_upload(self, db):
        payload = json.dumps([{"firstName": "A", "lastName": "B", "email": "a@example.com", "mobile": "0821234567"}])

        summary = ClientService(db).import_clients(payload.encode("utf-8"), "clients.json", None)

        assert summary["imported"] == 1
        assert db.query(Client).one().email == "a@example.com"

    def test_malformed_json_is_a_bad_request(self, db):
        from fastapi import HTTPException

        with pytest.raises(HTTPException) as exc_info:
            ClientService(db).import_clients(b"[{", "clients.json", "application/json")

        assert exc_info.value.status_code == 400
