"""HTTP surface: status codes and payload shapes."""
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session


def enroll(client, student_id, course_ids):
    return client.post("/api/enrollment/enroll", json={"student_id": student_id, "course_ids": course_ids})


class TestMeta:
    def test_health(self, client):
        res = client.get("/health")
        assert res.status_code == 200
        assert res.json()["status"] == "OK"

    def test_root_lists_endpoints(self, client):
        body = client.get("/").json()
        assert body["endpoints"]["enrollment"]["enroll"] == "POST /api/enrollment/enroll"


class TestEnrollmentApi:
    def test_enroll_created(self, client, sample):
        res = enroll(client, sample["students"][0], [sample["courses"]["CS101"], sample["courses"]["MA204"]])

        assert res.status_code == 201
        body = res.json()
        assert body["success"] is True
        assert body["message"] == "Successfully enrolled in 2 course(s)"
        assert [c["course_code"] for c in body["data"]["enrolled_courses"]] == ["CS101", "MA204"]

    def test_internal_conflict(self, client, sample):
        res = enroll(client, sample["students"][0], [sample["courses"]["CS101"], sample["courses"]["AP105"]])

        assert res.status_code == 409
        body = res.json()
        assert body["success"] is False
        assert body["kind"] == "schedule_conflict"
        assert body["scope"] == "internal"
        assert "Tuesday" in body["error"]
        assert len(body["conflicts"]) == 2

    def test_missing_courses(self, client, sample):
        res = enroll(client, sample["students"][0], [sample["courses"]["CS101"], 999])
        assert res.status_code == 404
        assert res.json()["missing"] == [999]

    def test_cross_college(self, client, sample):
        res = enroll(client, sample["students"][0], [sample["courses"]["CS102"]])
        assert res.status_code == 403
        assert res.json()["course_codes"] == ["CS102"]

    def test_already_enrolled(self, client, sample):
        enroll(client, sample["students"][0], [sample["courses"]["CS101"]])
        res = enroll(client, sample["students"][0], [sample["courses"]["CS101"]])
        assert res.status_code == 409
        assert res.json()["kind"] == "already_enrolled"

    def test_empty_selection_is_invalid_input(self, client, sample):
        res = enroll(client, sample["students"][0], [])
        assert res.status_code == 400
        assert res.json()["kind"] == "invalid_input"

    def test_non_numeric_ids_are_invalid_input(self, client, sample):
        res = client.post("/api/enrollment/enroll", json={"student_id": "abc", "course_ids": [1]})
        assert res.status_code == 400
        assert res.json()["kind"] == "invalid_input"

    def test_available_and_enrolled(self, client, sample):
        student = sample["students"][0]
        available = client.get(f"/api/enrollment/available/{student}").json()["data"]
        assert {c["course_code"] for c in available} == {"CS101", "MA204", "AP105", "CS201"}

        enroll(client, student, [sample["courses"]["CS201"]])
        enrolled = client.get(f"/api/enrollment/enrolled/{student}").json()["data"]
        assert [c["course_code"] for c in enrolled] == ["CS201"]
        assert enrolled[0]["timetable"].startswith("Wednesday 10:00:00-12:00:00")

    def test_unknown_student_reads(self, client, sample):
        assert client.get("/api/enrollment/enrolled/4040").status_code == 404

    def test_drop_twice(self, client, sample):
        student, cs101 = sample["students"][0], sample["courses"]["CS101"]
        enroll(client, student, [cs101])

        body = {"student_id": student, "course_id": cs101}
        first = client.request("DELETE", "/api/enrollment/drop", json=body)
        second = client.request("DELETE", "/api/enrollment/drop", json=body)

        assert first.status_code == 200
        assert first.json()["message"] == "Course dropped successfully"
        assert second.status_code == 404

    def test_lock_failure_is_retryable(self, client, sample, monkeypatch):
        """A lock timeout on commit answers 503 with retryable set and writes nothing."""
        student = sample["students"][0]

        def boom(self):
            raise OperationalError("COMMIT", {}, Exception("could not obtain lock"))

        monkeypatch.setattr(Session, "commit", boom)
        res = enroll(client, student, [sample["courses"]["CS101"]])
        monkeypatch.undo()

        assert res.status_code == 503
        body = res.json()
        assert body["success"] is False
        assert body["kind"] == "storage_failure"
        assert body["retryable"] is True
        assert client.get(f"/api/enrollment/enrolled/{student}").json()["data"] == []


class TestAdminApi:
    def test_requires_token(self, client, sample):
        assert client.get(f"/api/admin/timetable/{sample['courses']['CS101']}").status_code == 401

    def test_rejects_non_admin_token(self, client, sample):
        from course_enrollment.utils.auth import create_access_token

        token = create_access_token({"sub": "john", "role": "student"})
        res = client.get(
            f"/api/admin/timetable/{sample['courses']['CS101']}",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert res.status_code == 403

    def test_course_timetables(self, client, sample, admin_headers):
        res = client.get(f"/api/admin/timetable/{sample['courses']['CS101']}", headers=admin_headers)
        assert res.status_code == 200
        rows = res.json()["data"]
        assert [(r["day_of_week"], r["start_time"], r["end_time"]) for r in rows] == [
            ("Monday", "09:00:00", "10:00:00"),
            ("Tuesday", "10:00:00", "11:00:00"),
        ]

    def test_add_timetable(self, client, sample, admin_headers):
        res = client.post(
            "/api/admin/timetable",
            json={
                "course_id": sample["courses"]["CS201"],
                "day_of_week": "Thursday",
                "start_time": "09:00:00",
                "end_time": "10:30:00",
            },
            headers=admin_headers,
        )
        assert res.status_code == 201
        data = res.json()["data"]
        assert (data["day_of_week"], data["start_time"], data["end_time"]) == ("Thursday", "09:00:00", "10:30:00")

    def test_add_timetable_conflict_with_enrolled_student(self, client, sample, admin_headers):
        student = sample["students"][0]
        enroll(client, student, [sample["courses"]["CS101"], sample["courses"]["CS201"]])

        # CS201 on Monday 9:00 would clash with CS101 for John
        res = client.post(
            "/api/admin/timetable",
            json={
                "course_id": sample["courses"]["CS201"],
                "day_of_week": "Monday",
                "start_time": "09:30:00",
                "end_time": "10:00:00",
            },
            headers=admin_headers,
        )
        assert res.status_code == 409
        body = res.json()
        assert body["scope"] == "would_affect_enrolled"
        assert body["conflicts"][0]["student_id"] == student
        assert body["conflicts"][0]["course_code"] == "CS101"

    def test_add_timetable_bad_interval(self, client, sample, admin_headers):
        res = client.post(
            "/api/admin/timetable",
            json={
                "course_id": sample["courses"]["CS201"],
                "day_of_week": "Monday",
                "start_time": "11:00:00",
                "end_time": "10:00:00",
            },
            headers=admin_headers,
        )
        assert res.status_code == 400
        assert res.json()["error"] == "Start time must be before end time"

    def test_add_timetable_bad_weekday(self, client, sample, admin_headers):
        res = client.post(
            "/api/admin/timetable",
            json={
                "course_id": sample["courses"]["CS201"],
                "day_of_week": "Someday",
                "start_time": "09:00:00",
                "end_time": "10:00:00",
            },
            headers=admin_headers,
        )
        assert res.status_code == 400
        assert "Invalid day of week" in res.json()["error"]

    def test_update_and_delete_timetable(self, client, sample, admin_headers):
        rows = client.get(f"/api/admin/timetable/{sample['courses']['CS102']}", headers=admin_headers).json()["data"]
        slot_id = rows[0]["timetable_id"]

        res = client.put(f"/api/admin/timetable/{slot_id}", json={"end_time": "10:00:00"}, headers=admin_headers)
        assert res.status_code == 200
        assert res.json()["data"]["end_time"] == "10:00:00"

        assert client.put(f"/api/admin/timetable/{slot_id}", json={}, headers=admin_headers).status_code == 400

        assert client.delete(f"/api/admin/timetable/{slot_id}", headers=admin_headers).status_code == 200
        assert client.delete(f"/api/admin/timetable/{slot_id}", headers=admin_headers).status_code == 404

    def test_add_course(self, client, sample, admin_headers):
        payload = {"course_code": "EE110", "course_name": "Circuits", "college_id": sample["colleges"][0]}
        res = client.post("/api/admin/course", json=payload, headers=admin_headers)
        assert res.status_code == 201
        assert res.json()["data"]["credits"] == 3

        again = client.post("/api/admin/course", json=payload, headers=admin_headers)
        assert again.status_code == 409
        assert again.json()["error"] == "Course code already exists for this college"

    def test_enrolled_students_and_export(self, client, sample, admin_headers):
        cs201 = sample["courses"]["CS201"]
        enroll(client, sample["students"][1], [cs201])

        res = client.get(f"/api/admin/course/{cs201}/students", headers=admin_headers)
        assert [s["name"] for s in res.json()["data"]] == ["Jane Smith"]

        export = client.get(f"/api/admin/course/{cs201}/students/export", headers=admin_headers)
        assert export.status_code == 200
        assert export.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
        )
        assert export.content[:2] == b"PK"

    @pytest.mark.parametrize(
        "field, value",
        [("day_of_week", 1), ("start_time", 800), ("end_time", True)],
    )
    def test_add_timetable_non_string_values(self, client, sample, admin_headers, field, value):
        payload = {
            "course_id": sample["courses"]["CS201"],
            "day_of_week": "Monday",
            "start_time": "08:00:00",
            "end_time": "09:00:00",
        }
        payload[field] = value
        res = client.post("/api/admin/timetable", json=payload, headers=admin_headers)

        assert res.status_code == 400
        assert res.json()["kind"] == "invalid_input"
        assert field in res.json()["error"]
