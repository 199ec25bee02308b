"""
Unit tests per documenti, versioni e modelli.

I file finiscono nella STORAGE_ROOT temporanea impostata in conftest.
"""

import datetime
import uuid

import pytest
from sqlalchemy import select

from app.core.exceptions import BusinessValidationError, NotFoundError
from app.models.audit_log import AuditLog
from app.models.document import Document, DocumentVersion
from app.schemas.document import TemplateCreate, TemplateGenerate
from app.services.document_service import (
    document_service,
    file_extension,
    public_path_to_file,
    render_template_content,
)

from tests.conftest import make_client, make_user


# ============================================================
# Rendering segnaposto
# ============================================================


class TestRenderTemplate:
    """Tests per render_template_content."""

    CONTEXT = {
        "client": {"name": "Maria Souza", "tax_id": None},
        "matter": {"title": "Ação de despejo", "client": {"name": "Maria Souza"}},
    }

    def test_dotted_paths(self):
        """Test percorsi puntati, anche annidati."""
        out = render_template_content(
            "{{client.name}} / {{ matter.title }} / {{matter.client.name}}", self.CONTEXT
        )
        assert out == "Maria Souza / Ação de despejo / Maria Souza"

    def test_today(self):
        """Test {{today}} nel formato gg/mm/aaaa."""
        out = render_template_content("São Paulo, {{ today }}", {}, today=datetime.date(2025, 2, 7))
        assert out == "São Paulo, 07/02/2025"

    def test_overrides_win(self):
        """Test le variabili esplicite hanno la precedenza, anche su today."""
        out = render_template_content(
            "{{client.name}} {{today}}",
            self.CONTEXT,
            overrides={"client.name": "Outro Nome", "today": "hoje"},
        )
        assert out == "Outro Nome hoje"

    def test_missing_keys_empty(self):
        """Test chiavi assenti o nulle → stringa vuota."""
        out = render_template_content("[{{client.tax_id}}][{{nada}}][{{client.name.first}}]", self.CONTEXT)
        assert out == "[][][]"

    def test_text_without_placeholders(self):
        assert render_template_content("Procuração", self.CONTEXT) == "Procuração"


@pytest.mark.parametrize(
    "filename, expected",
    [("contrato.PDF", "pdf"), ("arquivo", "bin"), (None, "bin"), ("a.tar.gz", "gz"), ("x.p$f", "bin")],
)
def test_file_extension(filename, expected):
    assert file_extension(filename) == expected


# ============================================================
# Documenti e versioni
# ============================================================


class TestDocuments:
    """Tests per upload, versioni ed eliminazione."""

    async def test_upload_creates_first_version(self, db, admin, matter):
        """Test upload: file salvato, versione 1 e audit."""
        document = await document_service.upload(
            db, admin, "peticao.pdf", b"%PDF-1.4 conteudo", "application/pdf", matter_id=matter.id
        )

        assert document.version == 1
        assert document.storage_path.startswith("/uploads/")
        assert document.storage_path.endswith(".pdf")
        assert public_path_to_file(document.storage_path).read_bytes() == b"%PDF-1.4 conteudo"
        assert document.matter.title == "Ação de cobrança"

        versions = await document_service.list_versions(db, admin.tenant_id, document.id)
        assert [v.version for v in versions] == [1]
        audit = (await db.execute(select(AuditLog).where(AuditLog.entity_id == document.id))).scalars().all()
        assert [a.action for a in audit] == ["upload"]

    async def test_empty_upload_rejected(self, db, admin):
        with pytest.raises(BusinessValidationError):
            await document_service.upload(db, admin, "vazio.txt", b"", "text/plain")

    async def test_upload_on_foreign_matter(self, db, admin):
        """Test pratica inesistente → 404."""
        with pytest.raises(NotFoundError):
            await document_service.upload(db, admin, "a.txt", b"x", "text/plain", matter_id=uuid.uuid4())

    async def test_new_version_increments(self, db, admin, client_record):
        """Test nuova versione: numero incrementato e documento aggiornato."""
        document = await document_service.upload(
            db, admin, "contrato.docx", b"v1", None, client_id=client_record.id
        )
        version = await document_service.add_version(
            db, admin, document.id, "contrato-rev.docx", b"versao 2", None, "Revisão cláusula 3"
        )

        assert version.version == 2
        reloaded = await document_service.get_by_id(db, admin.tenant_id, document.id)
        assert reloaded.version == 2
        assert reloaded.storage_path == version.storage_path
        assert reloaded.file_size == len(b"versao 2")
        assert reloaded.mime_type == "application/octet-stream"

        versions = await document_service.list_versions(db, admin.tenant_id, document.id)
        assert [v.version for v in versions] == [2, 1]

    async def test_delete_removes_rows_and_files(self, db, admin):
        """Test eliminazione: righe e file di tutte le versioni rimossi."""
        document = await document_service.upload(db, admin, "a.txt", b"uno", "text/plain")
        version = await document_service.add_version(db, admin, document.id, "a.txt", b"due", "text/plain")
        first_path = public_path_to_file(
            (await document_service.list_versions(db, admin.tenant_id, document.id))[-1].storage_path
        )

        await document_service.delete(db, admin, document.id)

        assert (await db.execute(select(Document))).scalars().all() == []
        assert (await db.execute(select(DocumentVersion))).scalars().all() == []
        assert not first_path.exists()
        assert not public_path_to_file(version.storage_path).exists()

    async def test_client_documents_outside_matters(self, db, admin, client_record, matter):
        """Test exclude_matters: solo i documenti del cliente non legati a pratiche."""
        loose = await document_service.upload(db, admin, "rg.jpg", b"img", "image/jpeg", client_id=client_record.id)
        await document_service.upload(
            db, admin, "inicial.pdf", b"pdf", "application/pdf", matter_id=matter.id, client_id=client_record.id
        )

        documents = await document_service.get_all(
            db, admin.tenant_id, client_id=client_record.id, exclude_matters=True
        )
        assert [d.id for d in documents] == [loose.id]


# ============================================================
# Modelli
# ============================================================


class TestTemplates:
    """Tests per la generazione da modello."""

    async def test_generate_from_matter(self, db, admin, matter):
        """Test generazione: contesto dalla pratica e dal suo cliente, documento salvato."""
        template = await document_service.create_template(
            db,
            admin,
            TemplateCreate(
                name="Procuração",
                content="Outorgante: {{client.name}}\nProcesso: {{matter.process_number}}\nAdvogado: {{user.name}}",
            ),
        )

        generated = await document_service.generate(
            db, admin, template.id, TemplateGenerate(matter_id=matter.id)
        )

        assert generated.content == (
            "Outorgante: Cliente Teste Ltda\n"
            "Processo: 0001234-56.2025.8.26.0100\n"
            f"Advogado: {admin.full_name}"
        )
        document = generated.document
        assert document.document_type == "template"
        assert document.mime_type == "text/plain"
        assert document.matter_id == matter.id
        assert document.client_id == matter.client_id
        # Caratteri fuori da [a-zA-Z0-9-_. ] rimossi dal nome del modello
        assert document.name.startswith("Procurao - Cliente Teste Ltda - ")
        assert public_path_to_file(document.storage_path).read_text(encoding="utf-8") == generated.content

    async def test_generate_with_custom_name(self, db, admin, client_record):
        template = await document_service.create_template(
            db, admin, TemplateCreate(name="Recibo", content="Recebi de {{client.name}} {{valor}}")
        )
        generated = await document_service.generate(
            db,
            admin,
            template.id,
            TemplateGenerate(client_id=client_record.id, name="Recibo janeiro", variables={"valor": "R$ 100,00"}),
        )
        assert generated.document.name == "Recibo janeiro"
        assert generated.content == "Recebi de Cliente Teste Ltda R$ 100,00"

    async def test_template_of_other_tenant(self, db, admin, other_tenant):
        """Test modello di un altro studio → 404."""
        foreign_user = await make_user(db, other_tenant)
        template = await document_service.create_template(
            db, foreign_user, TemplateCreate(name="Modelo", content="x")
        )
        with pytest.raises(NotFoundError):
            await document_service.generate(db, admin, template.id, TemplateGenerate())

    async def test_client_of_other_tenant(self, db, admin, other_tenant):
        template = await document_service.create_template(
            db, admin, TemplateCreate(name="Modelo", content="x")
        )
        foreign_client = await make_client(db, other_tenant, "Cliente Beta")
        with pytest.raises(NotFoundError):
            await document_service.generate(
                db, admin, template.id, TemplateGenerate(client_id=foreign_client.id)
            )
