import pytest

from .utils import provision_doctor


class TestDepartments:

    def test_create_and_list(self, client, admin):
        for name in ("Neurology", "Cardiology"):
            response = client.post("/api/v1/departments", json={"name": name}, headers=admin["headers"])
            assert response.status_code == 201

        listed = client.get("/api/v1/departments", headers=admin["headers"]).json()
        assert [d["name"] for d in listed] == ["Cardiology", "Neurology"]

    @pytest.mark.parametrize("description", [None, ""])
    def test_missing_description_reads_as_empty(self, client, admin, description):
        created = client.post(
            "/api/v1/departments", json={"name": "Oncology", "description": description}, headers=admin["headers"]
        ).json()
        assert created["description"] == ""

        fetched = client.get(f"/api/v1/departments/{created['id']}", headers=admin["headers"]).json()
        assert fetched["description"] == ""

    def test_patients_can_read(self, client, department, patient):
        response = client.get("/api/v1/departments", headers=patient["headers"])
        assert response.status_code == 200
        assert response.json()[0]["name"] == "Cardiology"

    def test_non_admin_cannot_create(self, client, patient):
        response = client.post("/api/v1/departments", json={"name": "Oncology"}, headers=patient["headers"])
        assert response.status_code == 403

    def test_duplicate_name(self, client, admin, department):
        response = client.post("/api/v1/departments", json={"name": " Cardiology "}, headers=admin["headers"])
        assert response.status_code == 400
        assert response.json()["error"] == "A department with this name already exists"

    def test_blank_name(self, client, admin):
        response = client.post("/api/v1/departments", json={"name": "   "}, headers=admin["headers"])
        assert response.status_code == 400

    def test_update(self, client, admin, department):
        response = client.put(
            f"/api/v1/departments/{department['id']}",
            json={"name": "Cardiology & Vascular", "description": "Heart and vessels"},
            headers=admin["headers"],
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Cardiology & Vascular"
        assert response.json()["description"] == "Heart and vessels"

    def test_update_missing(self, client, admin):
        response = client.put("/api/v1/departments/999", json={"name": "Nowhere"}, headers=admin["headers"])
        assert response.status_code == 404
        assert response.json()["error"] == "Department not found"

    def test_delete(self, client, admin, department):
        response = client.delete(f"/api/v1/departments/{department['id']}", headers=admin["headers"])
        assert response.status_code == 200
        assert client.get("/api/v1/departments", headers=admin["headers"]).json() == []

    def test_delete_refused_while_doctors_assigned(self, client, admin, department, doctor):
        response = client.delete(f"/api/v1/departments/{department['id']}", headers=admin["headers"])
        assert response.status_code == 400
        assert response.json()["error"] == "Department still has doctors assigned"


class TestDoctors:

    def test_list_carries_name_and_department(self, client, doctor, patient):
        listed = client.get("/api/v1/doctors", headers=patient["headers"]).json()
        assert len(listed) == 1
        assert listed[0]["id"] == doctor["id"]
        assert listed[0]["user"]["full_name"] == "Gregory House"
        assert listed[0]["department"]["name"] == "Cardiology"
        assert listed[0]["specialization"] == "Cardiologist"

    def test_filter_by_department(self, client, admin, department, doctor):
        other = client.post("/api/v1/departments", json={"name": "Neurology"}, headers=admin["headers"]).json()
        provision_doctor(client, admin["headers"], other["id"], email="strange@example.com", full_name="Stephen Strange")

        listed = client.get(f"/api/v1/doctors?department_id={other['id']}", headers=admin["headers"]).json()
        assert [d["user"]["full_name"] for d in listed] == ["Stephen Strange"]

    def test_non_admin_cannot_delete(self, client, doctor, patient):
        response = client.delete(f"/api/v1/doctors/{doctor['id']}", headers=patient["headers"])
        assert response.status_code == 403

    def test_delete_missing(self, client, admin):
        response = client.delete("/api/v1/doctors/999", headers=admin["headers"])
        assert response.status_code == 404
