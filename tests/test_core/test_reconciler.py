"""Tests for bulk supplier upload reconciliation."""

from unittest.mock import patch

import pytest

from app.core.cascade import PRODUCTS
from app.core.errors import ReferenceNotLoaded
from app.core.reconciler import (
    SupplierReconciler,
    pair_contacts,
    parse_row,
    split_cells,
    split_pipe,
)
from app.core.suppliers import SUPPLIERS
from app.infra.document_store import MemoryDocumentStore
from app.schemas.supplier import RowOutcome
from app.schemas.user import ActingUser


class TestRowParsing:
    def test_split_pipe_trims_and_drops_empties(self):
        assert split_pipe(" a@x.com | |b@x.com|") == ["a@x.com", "b@x.com"]

    def test_contacts_pad_missing_phones(self):
        contacts = pair_contacts(["Ana", "Ben", "Cy"], ["111"])
        assert [(c.name, c.phone) for c in contacts] == [("Ana", "111"), ("Ben", ""), ("Cy", "")]

    def test_blank_phone_keeps_its_position(self):
        data = parse_row(
            {
                "Company Name": "Acme",
                "Contact Name(s)": "Ana|Ben|Cy",
                "Phone Number(s)": "111||333",
            }
        )

        assert [(c.name, c.phone) for c in data.contacts] == [
            ("Ana", "111"),
            ("Ben", ""),
            ("Cy", "333"),
        ]

    def test_split_cells_keeps_empty_positions(self):
        assert split_cells(" 111 | |333") == ["111", "", "333"]
        assert split_cells("") == []

    def test_company_header_fallbacks(self):
        assert parse_row({"Company Name": " Acme "}).company == "Acme"
        assert parse_row({"Company": "Acme"}).company == "Acme"
        assert parse_row({"company": "Acme"}).company == "Acme"
        assert parse_row({"Supplier": "Acme"}).company == "Acme"
        assert parse_row({"Supplier Name": "Acme"}).company == "Acme"
        assert parse_row({"Company Name": "", "Supplier": "Acme"}).company == "Acme"

    def test_full_row(self):
        data = parse_row(
            {
                "Company Name": "Acme",
                "Internal Code": "AC-1",
                "Addresses": "Main St 1|Side St 2",
                "Emails": "a@x.com|b@x.com",
                "Website": "acme.example",
                "Contact Name(s)": "Ana|Ben",
                "Phone Number(s)": "111|222",
                "Forte Product(s)": "Lamps",
                "Product(s)": "Downlight|Spotlight",
                "Certificate(s)": "CE",
            }
        )

        assert data.internal_code == "AC-1"
        assert data.addresses == ["Main St 1", "Side St 2"]
        assert data.emails == ["a@x.com", "b@x.com"]
        assert data.website == "acme.example"
        assert [(c.name, c.phone) for c in data.contacts] == [("Ana", "111"), ("Ben", "222")]
        assert data.forte_products == ["Lamps"]
        assert data.products == ["Downlight", "Spotlight"]
        assert data.certificates == ["CE"]


class TestReconcile:
    @pytest.mark.asyncio
    async def test_stored_contacts_stay_paired(
        self,
        reconciler: SupplierReconciler,
        store: MemoryDocumentStore,
        acting_user: ActingUser,
    ):
        report = await reconciler.reconcile(
            [
                {
                    "Company Name": "Acme",
                    "Contact Name(s)": "Ana||Cy",
                    "Phone Number(s)": "111||333",
                }
            ],
            acting_user,
        )

        doc = await store.get(SUPPLIERS, report.rows[0].supplier_id)
        assert doc.data["contacts"] == [
            {"name": "Ana", "phone": "111"},
            {"name": "Cy", "phone": "333"},
        ]

    @pytest.mark.asyncio
    async def test_insert_writes_back_supplier_id(
        self,
        reconciler: SupplierReconciler,
        store: MemoryDocumentStore,
        acting_user: ActingUser,
    ):
        report = await reconciler.reconcile([{"Company Name": "Acme", "Emails": "a@x.com"}], acting_user)

        assert report.inserted == 1
        assert report.nothing_uploaded is False
        doc = await store.get(SUPPLIERS, report.rows[0].supplier_id)
        assert doc.data["supplierId"] == doc.id
        assert doc.data["isActive"] is True
        assert doc.data["companyCode"].startswith("A-SUPP-")
        assert doc.data["referenceID"] == "REF-001"

    @pytest.mark.asyncio
    async def test_second_batch_skips_duplicate(
        self,
        reconciler: SupplierReconciler,
        store: MemoryDocumentStore,
        acting_user: ActingUser,
    ):
        row = {"Company Name": "Acme", "Emails": "a@x.com"}

        first = await reconciler.reconcile([row], acting_user)
        second = await reconciler.reconcile([row], acting_user)

        assert first.rows[0].outcome is RowOutcome.INSERTED
        assert second.rows[0].outcome is RowOutcome.SKIPPED_DUPLICATE
        assert second.nothing_uploaded is True
        assert len(await store.query(SUPPLIERS)) == 1

    @pytest.mark.asyncio
    async def test_duplicates_within_one_batch(
        self,
        reconciler: SupplierReconciler,
        store: MemoryDocumentStore,
        acting_user: ActingUser,
    ):
        report = await reconciler.reconcile(
            [{"Company Name": "Acme"}, {"Company": "ACME"}, {"Company Name": ""}],
            acting_user,
        )

        assert [r.outcome for r in report.rows] == [
            RowOutcome.INSERTED,
            RowOutcome.SKIPPED_DUPLICATE,
            RowOutcome.SKIPPED_INVALID,
        ]
        assert report.skipped == 2
        assert len(await store.query(SUPPLIERS)) == 1

    @pytest.mark.asyncio
    async def test_reactivates_inactive_supplier(
        self,
        reconciler: SupplierReconciler,
        store: MemoryDocumentStore,
        acting_user: ActingUser,
    ):
        acme_id = await store.create(
            SUPPLIERS,
            {"company": "Acme", "companyCode": "A-SUPP-OLD001", "emails": [], "isActive": False},
        )

        report = await reconciler.reconcile(
            [{"Company": "Acme", "Emails": "a@x.com|b@x.com"}], acting_user
        )

        assert report.rows[0].outcome is RowOutcome.REACTIVATED
        assert report.reactivated == 1
        docs = await store.query(SUPPLIERS)
        assert len(docs) == 1
        assert docs[0].id == acme_id
        assert docs[0].data["isActive"] is True
        assert docs[0].data["emails"] == ["a@x.com", "b@x.com"]
        assert docs[0].data["companyCode"] == "A-SUPP-OLD001"
        assert docs[0].data["updatedAt"] is not None

    @pytest.mark.asyncio
    async def test_reactivation_cascades_changed_company_case(
        self,
        reconciler: SupplierReconciler,
        store: MemoryDocumentStore,
        acting_user: ActingUser,
    ):
        acme_id = await store.create(SUPPLIERS, {"company": "acme", "isActive": False})
        product_id = await store.create(
            PRODUCTS, {"supplier": {"supplierId": acme_id, "company": "acme"}}
        )

        await reconciler.reconcile([{"Company Name": "ACME"}], acting_user)

        assert (await store.get(PRODUCTS, product_id)).data["supplier"]["company"] == "ACME"

    @pytest.mark.asyncio
    async def test_active_entry_wins_over_inactive(
        self,
        reconciler: SupplierReconciler,
        store: MemoryDocumentStore,
        acting_user: ActingUser,
    ):
        await store.create(SUPPLIERS, {"company": "Acme", "isActive": True})
        await store.create(SUPPLIERS, {"company": "acme", "isActive": False})

        report = await reconciler.reconcile([{"Company Name": "Acme"}], acting_user)

        assert report.rows[0].outcome is RowOutcome.SKIPPED_DUPLICATE

    @pytest.mark.asyncio
    async def test_snapshot_taken_once_per_batch(
        self,
        reconciler: SupplierReconciler,
        store: MemoryDocumentStore,
        acting_user: ActingUser,
    ):
        rows = [{"Company Name": f"Supplier {i}"} for i in range(5)]

        with patch.object(store, "query", wraps=store.query) as query:
            report = await reconciler.reconcile(rows, acting_user)

        assert report.inserted == 5
        supplier_queries = [c for c in query.call_args_list if c.args[0] == SUPPLIERS]
        assert len(supplier_queries) == 1

    @pytest.mark.asyncio
    async def test_requires_reference(
        self, reconciler: SupplierReconciler, anonymous_user: ActingUser
    ):
        with pytest.raises(ReferenceNotLoaded):
            await reconciler.reconcile([{"Company Name": "Acme"}], anonymous_user)

    @pytest.mark.asyncio
    async def test_empty_batch_uploads_nothing(
        self, reconciler: SupplierReconciler, acting_user: ActingUser
    ):
        report = await reconciler.reconcile([], acting_user)
        assert report.nothing_uploaded is True
        assert report.message.startswith("Nothing uploaded")
