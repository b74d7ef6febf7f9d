"""
API tests for the CSV template and import routes.

Run: pytest tests/unit/test_api_routes.py -v
"""

from tests.factories import LINKEDIN_HEADERS, ApplicationRowFactory, linkedin_upload


class TestTemplateRoutes:
    """Tests for /api/csv/templates"""

    def test_list_templates(self, test_client):
        response = test_client.get("/api/csv/templates")

        assert response.status_code == 200
        ids = [t["id"] for t in response.json()]
        assert ids[:3] == ["linkedin", "indeed", "glassdoor"]

    def test_list_templates_by_source(self, test_client):
        response = test_client.get("/api/csv/templates", params={"source": "indeed"})

        assert [t["id"] for t in response.json()] == ["indeed"]

    def test_get_template(self, test_client):
        response = test_client.get("/api/csv/templates/linkedin")

        assert response.status_code == 200
        assert response.json()["name"] == "LinkedIn Export"

    def test_get_unknown_template(self, test_client):
        response = test_client.get("/api/csv/templates/nope")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "TEMPLATE_NOT_FOUND"

    def test_detect(self, test_client):
        response = test_client.post("/api/csv/templates/detect", json={"headers": LINKEDIN_HEADERS})

        data = response.json()
        assert response.status_code == 200
        assert data["detected_template"]["id"] == "linkedin"
        assert data["confidence"] == 1.0
        assert data["total_headers"] == 6

    def test_detect_no_match_is_not_an_error(self, test_client):
        response = test_client.post("/api/csv/templates/detect", json={"headers": ["foo"]})

        assert response.status_code == 200
        assert response.json()["detected_template"] is None

    def test_detect_requires_headers(self, test_client):
        response = test_client.post("/api/csv/templates/detect", json={"headers": []})

        assert response.status_code == 422

    def test_mapping(self, test_client):
        response = test_client.post(
            "/api/csv/templates/linkedin/mapping",
            json={"headers": ["company_name", "Position", "Extra"]},
        )

        data = response.json()
        assert response.status_code == 200
        assert data["mapping"] == {"company": "company_name", "position": "Position"}
        assert data["unmapped_headers"] == ["Extra"]
        assert data["can_proceed"] is True

    def test_mapping_unknown_template(self, test_client):
        response = test_client.post("/api/csv/templates/nope/mapping", json={"headers": ["Company"]})

        assert response.status_code == 404

    def test_download(self, test_client):
        response = test_client.get("/api/csv/templates/minimal/download")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "minimal-template.csv" in response.headers["content-disposition"]
        assert response.text == "Company,Position,Status,Applied Date"

    def test_download_with_examples(self, test_client):
        response = test_client.get("/api/csv/templates/linkedin/download", params={"examples": "true"})

        assert '"Mountain View, CA"' in response.text

    def test_sample_data_json(self, test_client):
        response = test_client.post(
            "/api/csv/templates/sample-data",
            json={"template_id": "minimal", "count": 3, "seed": 7},
        )

        data = response.json()
        assert response.status_code == 200
        assert data["count"] == 3
        assert data["headers"] == ["Company", "Position", "Status", "Applied Date"]

    def test_sample_data_csv(self, test_client):
        response = test_client.post(
            "/api/csv/templates/sample-data",
            json={"template_id": "minimal", "count": 2, "format": "csv", "seed": 7},
        )

        assert response.headers["content-type"].startswith("text/csv")
        assert len(response.text.split("\n")) == 3

    def test_create_custom_template(self, test_client):
        response = test_client.post("/api/csv/templates", json={
            "name": "Spreadsheet",
            "description": "My own tracker",
            "mapping": {"company": "Firma", "position": "Rolle"},
        })

        assert response.status_code == 201
        template_id = response.json()["id"]
        assert test_client.get(f"/api/csv/templates/{template_id}").status_code == 200

    def test_create_custom_template_without_company(self, test_client):
        response = test_client.post("/api/csv/templates", json={
            "name": "Broken",
            "description": "No company column",
            "mapping": {"position": "Rolle"},
        })

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "INVALID_TEMPLATE"


class TestImportRoutes:
    """Tests for /api/imports"""

    def test_full_flow(self, test_client_with_mock_db, mock_supabase):
        mock_supabase.set_table_data("applications", [
            ApplicationRowFactory.create(id="app-1", company="Acme", position="Engineer",
                                         applied_date="2024-01-01"),
        ])
        client = test_client_with_mock_db

        started = client.post("/api/imports", json=linkedin_upload([
            ["Acme", "Engineer", "", "2024-01-02", "", ""],
        ]))
        assert started.status_code == 201
        session = started.json()
        assert [g["id"] for g in session["groups"]] == ["group-1"]

        early = client.post(f"/api/imports/{session['session_id']}/commit")
        assert early.status_code == 409
        assert early.json()["error"]["code"] == "UNRESOLVED_DUPLICATE_GROUPS"

        resolved = client.post(
            f"/api/imports/{session['session_id']}/resolutions",
            json={"group_id": "group-1", "action": "skip"},
        )
        assert resolved.json()["progress"] == 1.0

        committed = client.post(f"/api/imports/{session['session_id']}/commit")
        assert committed.status_code == 200
        assert committed.json()["summary"]["skipped"] == 1
        assert committed.json()["inserted"] == 0

    def test_unknown_session(self, test_client_with_mock_db):
        response = test_client_with_mock_db.get("/api/imports/missing")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "IMPORT_SESSION_NOT_FOUND"

    def test_unknown_group(self, test_client_with_mock_db):
        client = test_client_with_mock_db
        session = client.post("/api/imports", json=linkedin_upload([["Acme", "Engineer", "", "", "", ""]])).json()

        response = client.post(
            f"/api/imports/{session['session_id']}/resolutions",
            json={"group_id": "group-5", "action": "merge"},
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "DUPLICATE_GROUP_NOT_FOUND"

    def test_invalid_action(self, test_client_with_mock_db):
        response = test_client_with_mock_db.post(
            "/api/imports/any/resolutions", json={"group_id": "group-0", "action": "delete"}
        )

        assert response.status_code == 422

    def test_missing_required_fields(self, test_client_with_mock_db):
        response = test_client_with_mock_db.post(
            "/api/imports",
            json={"headers": ["Location"], "rows": [["Berlin"]], "template_id": "linkedin"},
        )

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "MISSING_REQUIRED_FIELDS"

    def test_abandon(self, test_client_with_mock_db, mock_supabase):
        client = test_client_with_mock_db
        session = client.post("/api/imports", json=linkedin_upload([["Acme", "Engineer", "", "", "", ""]])).json()

        response = client.delete(f"/api/imports/{session['session_id']}")

        assert response.status_code == 204
        assert client.get(f"/api/imports/{session['session_id']}").status_code == 404
        assert mock_supabase.calls == []


class TestHealth:

    def test_root(self, test_client):
        response = test_client.get("/")

        assert response.status_code == 200
        assert response.json()["endpoints"]["imports"] == "/api/imports"
