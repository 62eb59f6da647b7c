import io
import json
import os

from fastapi.testclient import TestClient
from PyPDF2 import PdfReader
from sqlalchemy.exc import OperationalError
from starlette.datastructures import UploadFile

from config import settings
from conftest import DEFAULT_ACTOR_ID, OUTSIDER_ID, make_pdf
from modules.documents.repositories import DocumentRepository
from modules.documents.services import DocumentService
from modules.documents.services.provenance import signature_label


def _audit_actions(client, document_id):
    response = client.get(f"/documents/{document_id}/auditlogs")
    assert response.status_code == 200
    return [entry["action"] for entry in response.json()]


def _first_page_text(data: bytes) -> str:
    return PdfReader(io.BytesIO(data)).pages[0].extract_text()


def test_upload_returns_created_document(upload):
    response = upload()

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "contrat.pdf"
    assert body["uid"].startswith("UID-")
    assert f"-USR{DEFAULT_ACTOR_ID:04d}-" in body["uid"]
    assert body["token"].startswith("DOC-")
    assert body["isSigned"] is False
    assert body["signatureData"] is None
    assert body["creatorId"] == DEFAULT_ACTOR_ID
    assert body["contentType"] == "application/pdf"
    assert body["size"].endswith(" MB")
    assert "content" not in body


def test_upload_is_audited_as_create(client, upload):
    document_id = upload().json()["id"]

    entries = client.get(f"/documents/{document_id}/auditlogs").json()
    assert len(entries) == 1
    assert entries[0]["action"] == "create"
    assert entries[0]["userId"] == DEFAULT_ACTOR_ID
    assert entries[0]["details"] == "Document importé: contrat.pdf"


def test_upload_uses_actor_header(upload):
    body = upload(headers={"X-User-Id": str(OUTSIDER_ID)}).json()
    assert body["creatorId"] == OUTSIDER_ID
    assert f"-USR{OUTSIDER_ID:04d}-" in body["uid"]


def test_every_upload_gets_a_fresh_uid(upload):
    first = upload().json()
    second = upload(options=json.dumps({"generateNewUid": False})).json()
    assert first["uid"] != second["uid"]
    assert first["token"] != second["token"]


def test_upload_rejects_non_pdf_and_leaves_no_staged_file(client, upload, temp_upload_dir):
    response = upload(content=b"PK\x03\x04", filename="rapport.docx", content_type="application/msword")

    assert response.status_code == 400
    assert response.json() == {"message": "Type de fichier non autorisé. Seuls les PDF sont acceptés."}
    assert not temp_upload_dir.exists() or os.listdir(temp_upload_dir) == []
    assert client.get("/documents").json() == []


def test_upload_rejects_javascript_and_stores_nothing(client, upload):
    content = b"%PDF-1.4\n1 0 obj\n<< /Type /Action /S /JavaScript /JS (app.alert(1)) >>\nendobj\n%%EOF"
    response = upload(content=content)

    assert response.status_code == 400
    assert response.json()["message"] == "Le PDF contient potentiellement du code JavaScript non autorisé."
    assert client.get("/documents").json() == []


def test_upload_rejects_fake_pdf(upload):
    response = upload(content=b"just some text")
    assert response.status_code == 400
    assert response.json()["message"] == "Le fichier n'est pas un PDF valide."


def test_upload_rejects_oversized_file(upload):
    content = b"%PDF-1.4\n" + b"0" * (10 * 1024 * 1024)
    response = upload(content=content)
    assert response.status_code == 400
    assert response.json()["message"] == "Le fichier est trop volumineux. La taille maximale est de 10 MB."


def test_upload_without_file(client):
    response = client.post("/documents/upload", data={"options": "{}"})
    assert response.status_code == 400
    assert response.json()["message"] == "Aucun fichier n'a été téléchargé."


def test_upload_with_malformed_options(upload):
    response = upload(options="{not json")
    assert response.status_code == 400
    assert response.json()["message"] == "Options d'importation invalides."


def test_upload_stamps_provenance(client, upload):
    body = upload().json()
    document = client.get(f"/documents/{body['id']}/download")

    reader = PdfReader(io.BytesIO(document.content))
    assert body["uid"] in reader.metadata.title
    assert f"UID:{body['uid'][-8:]}" in reader.pages[0].extract_text()


def test_sign_after_import(client, upload):
    body = upload(options=json.dumps({"signAfterImport": True})).json()

    assert body["isSigned"] is True
    assert body["signatureData"].startswith("digital_signature_")
    assert _audit_actions(client, body["id"]) == ["sign", "create"]


def test_list_documents_most_recent_first(client, upload):
    first = upload(filename="a.pdf").json()
    second = upload(filename="b.pdf").json()

    assert [d["id"] for d in client.get("/documents").json()] == [second["id"], first["id"]]

    client.post(f"/documents/{first['id']}/sign")
    assert [d["id"] for d in client.get("/documents").json()] == [first["id"], second["id"]]


def test_get_document(client, upload):
    body = upload().json()
    response = client.get(f"/documents/{body['id']}")
    assert response.status_code == 200
    assert response.json()["uid"] == body["uid"]


def test_get_unknown_document(client):
    response = client.get("/documents/999")
    assert response.status_code == 404
    assert response.json() == {"message": "Document non trouvé"}


def test_malformed_id_is_rejected_before_lookup(client, upload, monkeypatch):
    document_id = upload().json()["id"]

    def fail(*args, **kwargs):
        raise AssertionError("repository must not be called")

    monkeypatch.setattr(DocumentRepository, "get", fail)
    for path in ("/documents/abc", "/documents/abc/download", "/documents/1%3B1/auditlogs"):
        response = client.get(path)
        assert response.status_code == 400
        assert response.json() == {"message": "Format d'identifiant de document invalide"}
    assert client.post("/documents/abc/sign").status_code == 400
    monkeypatch.undo()

    assert _audit_actions(client, document_id) == ["create"]


def test_sign_document(client, upload):
    document_id = upload().json()["id"]

    response = client.post(f"/documents/{document_id}/sign")
    assert response.status_code == 200
    body = response.json()
    assert body["isSigned"] is True
    assert body["signatureData"].startswith("digital_signature_")
    assert _audit_actions(client, document_id) == ["sign", "create"]

    details = client.get(f"/documents/{document_id}/auditlogs").json()[0]["details"]
    assert details == f"Document signé avec le certificat #{signature_label(body['signatureData'])}"


def test_sign_is_idempotent(client, upload):
    document_id = upload().json()["id"]
    first = client.post(f"/documents/{document_id}/sign").json()
    second = client.post(f"/documents/{document_id}/sign").json()

    assert second["signatureData"] == first["signatureData"]
    assert _audit_actions(client, document_id) == ["sign", "create"]


def test_sign_unknown_document(client):
    response = client.post("/documents/999/sign")
    assert response.status_code == 404


def test_download_shows_signature_only_after_signing(client, upload):
    document_id = upload().json()["id"]

    before = client.get(f"/documents/{document_id}/download")
    signature_data = client.post(f"/documents/{document_id}/sign").json()["signatureData"]
    after = client.get(f"/documents/{document_id}/download")

    label = signature_label(signature_data)
    assert label not in _first_page_text(before.content)
    assert label in _first_page_text(after.content)


def test_download_response_headers(client, upload):
    document_id = upload(filename="contrat.pdf").json()["id"]

    response = client.get(f"/documents/{document_id}/download")
    assert response.status_code == 200
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["content-disposition"] == 'attachment; filename="contrat.pdf"'
    assert response.content.startswith(b"%PDF-")


def test_download_preserves_page_count(client, upload, two_page_pdf):
    document_id = upload(content=two_page_pdf).json()["id"]
    response = client.get(f"/documents/{document_id}/download")
    assert len(PdfReader(io.BytesIO(response.content)).pages) == 2


def test_download_is_audited_for_the_caller(client, upload):
    document_id = upload().json()["id"]
    client.get(f"/documents/{document_id}/download", headers={"X-User-Id": str(OUTSIDER_ID)})

    latest = client.get(f"/documents/{document_id}/auditlogs").json()[0]
    assert latest["action"] == "download"
    assert latest["userId"] == OUTSIDER_ID


def test_any_actor_can_read_and_download_unshared_document(client, upload):
    document_id = upload().json()["id"]
    headers = {"X-User-Id": str(OUTSIDER_ID)}

    assert client.get(f"/documents/{document_id}", headers=headers).status_code == 200
    assert client.get(f"/documents/{document_id}/download", headers=headers).status_code == 200
    assert client.get(f"/documents/{document_id}/shares").json() == []


def test_audit_log_is_newest_first(client, upload):
    document_id = upload().json()["id"]
    client.post(f"/documents/{document_id}/sign")
    client.get(f"/documents/{document_id}/download")

    assert _audit_actions(client, document_id) == ["download", "sign", "create"]


def test_delete_document_keeps_its_audit_trail(client, upload):
    document_id = upload().json()["id"]
    client.post(f"/documents/{document_id}/shares", json={"userId": 11})

    response = client.delete(f"/documents/{document_id}")
    assert response.status_code == 204

    assert client.get(f"/documents/{document_id}").status_code == 404
    assert client.get(f"/documents/{document_id}/shares").json() == []
    assert _audit_actions(client, document_id) == ["delete", "share", "create"]


def test_delete_unknown_document(client):
    assert client.delete("/documents/999").status_code == 404


def test_security_headers_are_set(client):
    response = client.get("/documents")
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["referrer-policy"] == "strict-origin-when-cross-origin"
    assert response.headers["cache-control"] == "no-store"


def test_rate_limit_on_document_routes(client, session, clock):
    document = DocumentRepository(session).create(
        name="limite.pdf",
        uid="UID-20240101-000000-USR0001-CPY7890-0000000000000001",
        token="DOC-20240101-000000-0000000000000001",
        content=make_pdf(),
        content_type="application/pdf",
        creator_id=DEFAULT_ACTOR_ID,
    )

    for _ in range(100):
        assert client.get(f"/documents/{document.id}").status_code == 200

    response = client.get(f"/documents/{document.id}")
    assert response.status_code == 429
    assert response.json() == {"message": "Trop de requêtes. Veuillez réessayer plus tard."}
    assert int(response.headers["retry-after"]) > 0
    assert response.headers["x-content-type-options"] == "nosniff"

    clock.advance(15 * 60 + 1)
    assert client.get(f"/documents/{document.id}").status_code == 200


def test_out_of_range_id_is_not_found(client):
    huge = "99999999999999999999"

    assert client.get(f"/documents/{huge}").status_code == 404
    assert client.post(f"/documents/{huge}/sign").status_code == 404
    assert client.get(f"/documents/{huge}/download").status_code == 404
    assert client.delete(f"/documents/{huge}").status_code == 404
    assert client.get(f"/documents/{huge}/auditlogs").json() == []


def test_out_of_range_actor_header_is_rejected(client):
    response = client.get("/documents/1/download", headers={"X-User-Id": "99999999999999999999"})
    assert response.status_code == 400


def test_upload_read_is_capped_at_size_limit(upload, monkeypatch):
    read_sizes = []
    original_read = UploadFile.read

    async def recording_read(self, size=-1):
        read_sizes.append(size)
        return await original_read(self, size)

    monkeypatch.setattr(UploadFile, "read", recording_read)
    response = upload(content=b"%PDF-1.4\n" + b"0" * (settings.MAX_UPLOAD_SIZE + 1024 * 1024))

    assert response.status_code == 400
    assert response.json()["message"] == "Le fichier est trop volumineux. La taille maximale est de 10 MB."
    assert settings.MAX_UPLOAD_SIZE + 1 in read_sizes
    assert -1 not in read_sizes


def test_database_failure_is_an_internal_error(client, monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is down"))

    monkeypatch.setattr(DocumentRepository, "list_all", broken)
    response = client.get("/documents")

    assert response.status_code == 500
    assert response.json() == {"message": "Erreur interne du serveur"}
    assert "database is down" not in response.text
    assert response.headers["x-content-type-options"] == "nosniff"


def test_unexpected_error_keeps_security_headers(client, monkeypatch):
    def broken(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(DocumentService, "list_documents", broken)
    response = TestClient(client.app, raise_server_exceptions=False).get("/documents")

    assert response.status_code == 500
    assert response.json() == {"message": "Erreur interne du serveur"}
    assert "boom" not in response.text
    assert response.headers["x-content-type-options"] == "nosniff"
    assert response.headers["cache-control"] == "no-store"
