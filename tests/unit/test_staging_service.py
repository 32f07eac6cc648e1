"""
Tests for staging_service — the catalog to staged set pipeline.
"""

import threading
from decimal import Decimal
from unittest.mock import call, patch, MagicMock

import pytest

from models.staging import SearchStatus, SettingsUpdate, StagingSettings
from config.storage import MemoryStore, StoreError
from integrations.print_queue import PrintQueueClient
from parsers.csv_parser import parse_csv, unparse_csv
from services.inventory_store import InventoryStore, SETTINGS_KEY
from services.staging_service import (
    StagingService,
    project_record,
    search_records,
    stage_record,
    build_record,
    edit_record,
    delete_records,
    merge_rows,
    reconcile_settings,
)
from exceptions import (
    NoHeadersError,
    MissingKeyError,
    MissingColumnsError,
    StagedRecordNotFoundError,
    StagedKeyExistsError,
    EmptySearchQueryError,
    UnknownColumnError,
    CatalogNotConfiguredError,
    KeyColumnNotSavedError,
    NotFoundError,
    StorageError,
)


CATALOG = [
    {"sku": "A1", "name": "Widget"},
    {"sku": "B2", "name": "Gadget"},
]


# ===================
# PURE OPERATIONS
# ===================

class TestProjectRecord:
    """Tests for save-column projection."""

    def test_keeps_only_save_columns(self):
        record = {"sku": "A1", "name": "Widget", "secret": "x"}

        assert project_record(record, ["sku", "name"]) == {"sku": "A1", "name": "Widget"}

    def test_fills_missing_columns(self):
        assert project_record({"sku": "A1"}, ["sku", "name"]) == {"sku": "A1", "name": ""}

    def test_follows_save_column_order(self):
        projected = project_record({"sku": "A1", "name": "Widget"}, ["name", "sku"])

        assert list(projected) == ["name", "sku"]


class TestSearchRecords:
    """Tests for search precedence."""

    def test_found_case_insensitive(self):
        status, record = search_records(CATALOG, [], "sku", "a1")

        assert status == SearchStatus.FOUND
        assert record == {"sku": "A1", "name": "Widget"}

    def test_substring_match(self):
        status, record = search_records(CATALOG, [], "sku", "2")

        assert status == SearchStatus.FOUND
        assert record["sku"] == "B2"

    def test_first_catalog_match_wins(self):
        catalog = [{"sku": "A1"}, {"sku": "A10"}, {"sku": "A1"}]

        _, record = search_records(catalog, [], "sku", "a1")

        assert record is catalog[0]

    def test_staged_checked_first(self):
        status, record = search_records(CATALOG, [{"sku": "A1", "name": "Widget"}], "sku", "a1")

        assert status == SearchStatus.ALREADY_STAGED
        assert record is None

    def test_staged_requires_exact_match(self):
        status, record = search_records(CATALOG, [{"sku": "A10"}], "sku", "A1")

        assert status == SearchStatus.FOUND
        assert record["sku"] == "A1"

    def test_not_found(self):
        assert search_records(CATALOG, [], "sku", "Z9") == (SearchStatus.NOT_FOUND, None)


class TestStageRecord:
    """Tests for stage_record."""

    def test_adds_projection(self):
        staged, added = stage_record([], {"sku": "A1", "name": "Widget"}, "sku", ["sku"])

        assert added
        assert staged == [{"sku": "A1"}]

    def test_duplicate_key_not_added(self):
        original = [{"sku": "A1"}]

        staged, added = stage_record(original, {"sku": "A1"}, "sku", ["sku"])

        assert not added
        assert staged == original

    def test_key_comparison_is_exact(self):
        staged, added = stage_record([{"sku": "A1"}], {"sku": "a1"}, "sku", ["sku"])

        assert added
        assert len(staged) == 2

    def test_does_not_mutate_input(self):
        original = []

        stage_record(original, {"sku": "A1"}, "sku", ["sku"])

        assert original == []


class TestBuildRecord:
    """Tests for build_record."""

    def test_projects_form_values(self):
        record = build_record({"sku": "N1", "extra": "x"}, "sku", ["sku", "name"])

        assert record == {"sku": "N1", "name": ""}

    @pytest.mark.parametrize("values", [{}, {"sku": ""}, {"sku": None}, {"sku": "  "}, {"sku": "\t"}])
    def test_empty_key_raises(self, values):
        with pytest.raises(MissingKeyError) as exc_info:
            build_record(values, "sku", ["sku", "name"])

        assert exc_info.value.code == "MISSING_KEY"
        assert exc_info.value.message == "Please provide a value for sku"


class TestEditRecord:
    """Tests for edit_record."""

    def test_overwrites_fields(self):
        staged = [{"sku": "A1", "name": "Widget"}, {"sku": "B2", "name": "Gadget"}]

        new_staged, updated = edit_record(staged, "sku", "A1", {"name": "Widget XL"}, ["sku", "name"])

        assert updated == {"sku": "A1", "name": "Widget XL"}
        assert new_staged[0] == updated
        assert new_staged[1] == staged[1]
        assert staged[0]["name"] == "Widget"

    def test_ignores_unknown_columns(self):
        staged = [{"sku": "A1", "name": "Widget"}]

        _, updated = edit_record(staged, "sku", "A1", {"bogus": "x"}, ["sku", "name"])

        assert updated == {"sku": "A1", "name": "Widget"}

    def test_rename_key(self):
        staged = [{"sku": "A1", "name": "Widget"}]

        new_staged, _ = edit_record(staged, "sku", "A1", {"sku": "A2"}, ["sku", "name"])

        assert new_staged == [{"sku": "A2", "name": "Widget"}]

    def test_rename_onto_existing_key_raises(self):
        staged = [{"sku": "A1"}, {"sku": "B2"}]

        with pytest.raises(StagedKeyExistsError) as exc_info:
            edit_record(staged, "sku", "A1", {"sku": "B2"}, ["sku"])

        assert exc_info.value.status_code == 409

    def test_blank_key_raises(self):
        with pytest.raises(MissingKeyError):
            edit_record([{"sku": "A1"}], "sku", "A1", {"sku": ""}, ["sku"])

    def test_absent_key_raises(self):
        with pytest.raises(StagedRecordNotFoundError) as exc_info:
            edit_record([{"sku": "A1"}], "sku", "Z9", {"sku": "Z9"}, ["sku"])

        assert exc_info.value.status_code == 404


class TestDeleteRecords:
    """Tests for delete_records."""

    def test_removes_matching(self):
        staged = [{"sku": "A1"}, {"sku": "B2"}]

        assert delete_records(staged, "sku", "A1") == [{"sku": "B2"}]

    def test_absent_key_is_noop(self):
        staged = [{"sku": "A1"}]

        assert delete_records(staged, "sku", "Z9") == staged

    def test_twice_same_as_once(self):
        staged = [{"sku": "A1"}, {"sku": "B2"}]

        once = delete_records(staged, "sku", "A1")

        assert delete_records(once, "sku", "A1") == once


class TestMergeRows:
    """Tests for merge_rows."""

    def test_adds_new_rows_in_order(self):
        rows = [{"sku": "C3", "name": "Thing"}, {"sku": "D4", "name": "Other"}]

        merged, added, skipped = merge_rows([{"sku": "A1", "name": "W"}], rows, ["sku", "name"], "sku", ["sku", "name"])

        assert [r["sku"] for r in merged] == ["A1", "C3", "D4"]
        assert added == rows
        assert skipped == 0

    def test_skips_existing_and_empty_keys(self):
        rows = [{"sku": "A1", "name": "W"}, {"sku": "", "name": "Blank"}, {"sku": "C3", "name": "T"}]

        merged, added, skipped = merge_rows([{"sku": "A1", "name": "W"}], rows, ["sku", "name"], "sku", ["sku", "name"])

        assert [r["sku"] for r in merged] == ["A1", "C3"]
        assert len(added) == 1
        assert skipped == 2

    def test_skips_duplicates_within_file(self):
        rows = [{"sku": "C3", "name": "first"}, {"sku": "C3", "name": "second"}]

        merged, _, skipped = merge_rows([], rows, ["sku", "name"], "sku", ["sku", "name"])

        assert merged == [{"sku": "C3", "name": "first"}]
        assert skipped == 1

    def test_projects_extra_columns_away(self):
        rows = [{"sku": "C3", "name": "T", "note": "x"}]

        merged, _, _ = merge_rows([], rows, ["sku", "name", "note"], "sku", ["sku", "name"])

        assert merged == [{"sku": "C3", "name": "T"}]

    def test_missing_columns_raises(self):
        with pytest.raises(MissingColumnsError) as exc_info:
            merge_rows([], [{"sku": "C3"}], ["sku"], "sku", ["sku", "name", "price"])

        assert exc_info.value.details == {"missing": ["name", "price"]}
        assert exc_info.value.message == "New inventory CSV is missing required columns: name, price"


class TestReconcileSettings:
    """Tests for fitting saved settings onto new headers."""

    def test_keeps_valid_settings(self):
        existing = StagingSettings(sku_column="name", save_columns=["name"], lists=["main"])

        result = reconcile_settings(existing, ["sku", "name"])

        assert result.sku_column == "name"
        assert result.save_columns == ["name"]
        assert result.lists == ["main"]

    def test_unknown_key_falls_back_to_first_field(self):
        existing = StagingSettings(sku_column="code", save_columns=["name"])

        result = reconcile_settings(existing, ["sku", "name"])

        assert result.sku_column == "sku"
        assert result.save_columns == ["sku", "name"]

    def test_no_surviving_columns_saves_all(self):
        existing = StagingSettings(sku_column="sku", save_columns=["gone"])

        result = reconcile_settings(existing, ["sku", "name"])

        assert result.save_columns == ["sku", "name"]


# ===================
# SERVICE
# ===================

class TestImportCatalog:
    """Tests for StagingService.import_catalog."""

    def test_defaults_settings(self, service, catalog_csv):
        result = service.import_catalog(catalog_csv)

        assert result.fields == ["sku", "Name", "Price", "Cost"]
        assert len(result.catalog) == 3
        assert service.key_column == "sku"
        assert service.save_columns == ["sku", "Name", "Price", "Cost"]
        assert service.catalog_loaded

    def test_persists_catalog_and_settings(self, service, inventory_store, catalog_csv):
        service.import_catalog(catalog_csv)

        assert len(inventory_store.load_catalog()) == 3
        assert inventory_store.load_settings().sku_column == "sku"

    def test_accepts_bytes(self, service):
        result = service.import_catalog(b"sku,name\nA1,Widget\n")

        assert result.catalog == [{"sku": "A1", "name": "Widget"}]

    def test_reports_skipped_rows(self, service):
        result = service.import_catalog("sku,name\nA1,Widget\nB2,Gadget,extra\n")

        assert len(result.catalog) == 1
        assert result.errors[0]["values"] == ["B2", "Gadget", "extra"]

    def test_empty_file_raises(self, service):
        with pytest.raises(NoHeadersError) as exc_info:
            service.import_catalog("")

        assert exc_info.value.code == "CSV_NO_HEADERS"
        assert exc_info.value.message == "CSV has no valid headers"

    def test_rejected_import_keeps_state(self, loaded_service, inventory_store):
        with pytest.raises(NoHeadersError):
            loaded_service.import_catalog("\n\n")

        assert len(loaded_service.catalog) == 3
        assert len(inventory_store.load_catalog()) == 3

    def test_preserves_existing_settings(self, loaded_service):
        loaded_service.update_settings(SettingsUpdate(sku_column="Name", save_columns=["Name", "Price"]))

        loaded_service.import_catalog(
            "sku,Name,Price\nZ1,Other,$1\n",
            existing_settings=loaded_service.staging_settings,
        )

        assert loaded_service.key_column == "Name"
        assert loaded_service.save_columns == ["Name", "Price"]

    def test_staged_set_untouched(self, loaded_service):
        loaded_service.stage({"sku": "A1", "Name": "Widget", "Price": "$10.00", "Cost": "$4.00"})

        loaded_service.import_catalog("sku,Name\nZ1,Other\n")

        assert [r["sku"] for r in loaded_service.staged] == ["A1"]


class TestSearch:
    """Tests for StagingService.search and lookup."""

    def test_found_includes_margin(self, loaded_service):
        result = loaded_service.search("a1")

        assert result.status == SearchStatus.FOUND
        assert result.record["sku"] == "A1"
        assert result.message == "Found product: Widget"
        assert result.margin.margin == Decimal("6.00")
        assert result.margin.suggested_prices[5].price == Decimal("6.00")

    def test_found_without_cost_has_no_margin(self, loaded_service):
        result = loaded_service.search("10")

        assert result.record["sku"] == "A10"
        assert result.margin is None

    def test_fragment_returns_first_match(self, loaded_service):
        assert loaded_service.search("a").record["sku"] == "A1"

    def test_found_without_name(self, service):
        service.import_catalog("sku,price\nA1,10\n")

        assert service.search("A1").message == "Found product: Unknown"

    def test_already_staged(self, loaded_service):
        loaded_service.stage(loaded_service.catalog[0])

        result = loaded_service.search("a1")

        assert result.status == SearchStatus.ALREADY_STAGED
        assert result.message == 'Item with sku "a1" already exists in new inventory'

    def test_not_found_prefills_key(self, loaded_service):
        result = loaded_service.search("Z9")

        assert result.status == SearchStatus.NOT_FOUND
        assert result.prefill == {"sku": "Z9"}
        assert result.message == "No product found. Create a new item below."

    @pytest.mark.parametrize("query", ["", "   "])
    def test_blank_query_raises(self, loaded_service, query):
        with pytest.raises(EmptySearchQueryError):
            loaded_service.search(query)

    def test_requires_catalog(self, service):
        with pytest.raises(CatalogNotConfiguredError):
            service.search("A1")

    def test_lookup_stages_hit(self, loaded_service, print_queue):
        result = loaded_service.lookup("a1")

        assert result.staged
        assert loaded_service.staged == [
            {"sku": "A1", "Name": "Widget", "Price": "$10.00", "Cost": "$4.00"}
        ]
        print_queue.notify_staged.assert_called_once_with("A1")

    def test_lookup_fragment_of_staged_key(self, loaded_service):
        loaded_service.stage(loaded_service.catalog[0])

        result = loaded_service.lookup("A")

        assert result.status == SearchStatus.FOUND
        assert not result.staged
        assert result.message == "Item already exists in new inventory"
        assert len(loaded_service.staged) == 1

    def test_lookup_not_found_stages_nothing(self, loaded_service):
        result = loaded_service.lookup("Z9")

        assert result.status == SearchStatus.NOT_FOUND
        assert loaded_service.staged == []


class TestStagedSet:
    """Tests for stage, create, edit and delete on the service."""

    def test_stage_projects_and_persists(self, loaded_service, inventory_store):
        loaded_service.update_settings(SettingsUpdate(save_columns=["sku", "Name"]))

        assert loaded_service.stage(loaded_service.catalog[0])

        assert loaded_service.staged == [{"sku": "A1", "Name": "Widget"}]
        assert inventory_store.load_staged() == loaded_service.staged

    def test_stage_duplicate_is_noop(self, loaded_service, print_queue):
        loaded_service.stage(loaded_service.catalog[0])

        assert not loaded_service.stage(loaded_service.catalog[0])
        assert len(loaded_service.staged) == 1
        assert print_queue.notify_staged.call_count == 1

    def test_stage_requires_settings(self, service):
        with pytest.raises(CatalogNotConfiguredError):
            service.stage({"sku": "A1"})

    def test_create_record(self, loaded_service, print_queue):
        record, added = loaded_service.create_record({"sku": "N1", "Name": "New"})

        assert added
        assert record == {"sku": "N1", "Name": "New", "Price": "", "Cost": ""}
        assert loaded_service.staged == [record]
        print_queue.notify_staged.assert_called_once_with("N1")

    def test_create_empty_key_leaves_staged_unchanged(self, service, inventory_store):
        service.import_catalog("sku,name\nA1,Widget\n")

        with pytest.raises(MissingKeyError):
            service.create_record({"sku": "", "name": "X"})

        assert service.staged == []
        assert inventory_store.load_staged() == []

    def test_create_existing_key_not_added(self, loaded_service):
        loaded_service.stage(loaded_service.catalog[0])

        _, added = loaded_service.create_record({"sku": "A1", "Name": "Copy"})

        assert not added
        assert loaded_service.staged[0]["Name"] == "Widget"

    def test_edit_persists(self, loaded_service, inventory_store):
        loaded_service.stage(loaded_service.catalog[0])

        updated = loaded_service.edit("A1", {"Price": "$11.00"})

        assert updated["Price"] == "$11.00"
        assert inventory_store.load_staged()[0]["Price"] == "$11.00"

    def test_edit_absent_key_changes_nothing(self, loaded_service, inventory_store):
        loaded_service.stage(loaded_service.catalog[0])
        before = inventory_store.load_staged()

        with pytest.raises(StagedRecordNotFoundError):
            loaded_service.edit("Z9", {"Price": "$1"})

        assert inventory_store.load_staged() == before

    def test_delete_idempotent(self, loaded_service):
        loaded_service.stage(loaded_service.catalog[0])
        loaded_service.stage(loaded_service.catalog[1])

        assert loaded_service.delete("A1") == 1
        after_once = loaded_service.staged_records()
        assert loaded_service.delete("A1") == 0
        assert loaded_service.staged_records() == after_once

    def test_keys_stay_unique(self, loaded_service):
        for record in [*loaded_service.catalog, *loaded_service.catalog]:
            loaded_service.stage(record)
        loaded_service.create_record({"sku": "B2"})

        keys = [r["sku"] for r in loaded_service.staged]
        assert len(keys) == len(set(keys)) == 3

    def test_newest_first(self, loaded_service):
        for record in loaded_service.catalog:
            loaded_service.stage(record)

        assert [r["sku"] for r in loaded_service.staged_records(newest_first=True)] == ["A10", "B2", "A1"]
        assert [r["sku"] for r in loaded_service.staged] == ["A1", "B2", "A10"]


class TestMargin:
    """Tests for StagingService.margin_for."""

    def test_catalog_record(self, loaded_service):
        view = loaded_service.margin_for("B2")

        assert view.margin == Decimal("5.00")
        assert view.margin_percent == Decimal("25.00")

    def test_staged_record_takes_precedence(self, loaded_service):
        loaded_service.stage(loaded_service.catalog[0])
        loaded_service.edit("A1", {"Price": "$8.00"})

        assert loaded_service.margin_for("A1").margin == Decimal("4.00")

    def test_no_cost(self, loaded_service):
        assert loaded_service.margin_for("A10") is None

    def test_unknown_key(self, loaded_service):
        with pytest.raises(NotFoundError):
            loaded_service.margin_for("Z9")


class TestExportAndMerge:
    """Tests for export_csv and merge_import."""

    def test_export_header_and_rows(self, service):
        service.import_catalog("sku,name\nA1,Widget\n")
        service.stage(service.catalog[0])

        assert service.export_csv().splitlines() == ["sku,name", "A1,Widget"]

    def test_export_empty_set(self, loaded_service):
        assert loaded_service.export_csv().splitlines() == ["sku,Name,Price,Cost"]

    def test_export_then_merge_adds_nothing(self, loaded_service):
        for record in loaded_service.catalog:
            loaded_service.stage(record)
        exported = loaded_service.export_csv()

        result = loaded_service.merge_import(exported)

        assert (result.added, result.skipped, result.total) == (0, 3, 3)

    def test_merge_restores_deleted_records(self, loaded_service, print_queue):
        for record in loaded_service.catalog:
            loaded_service.stage(record)
        exported = loaded_service.export_csv()
        loaded_service.delete("A1")
        loaded_service.delete("B2")
        print_queue.reset_mock()

        result = loaded_service.merge_import(exported)

        assert result.added == 2
        assert [r["sku"] for r in loaded_service.staged] == ["A10", "A1", "B2"]
        assert print_queue.notify_staged.call_args_list == [call("A1"), call("B2")]

    def test_merge_round_trip_matches_export(self, loaded_service):
        for record in loaded_service.catalog:
            loaded_service.stage(record)
        exported = loaded_service.export_csv()
        for key in ["A1", "B2", "A10"]:
            loaded_service.delete(key)

        loaded_service.merge_import(exported)

        assert loaded_service.staged == parse_csv(exported).rows

    def test_missing_columns_leaves_staged_unchanged(self, loaded_service, inventory_store):
        loaded_service.stage(loaded_service.catalog[0])
        before = list(loaded_service.staged)

        with pytest.raises(MissingColumnsError):
            loaded_service.merge_import("sku,Name\nC3,Thing\n")

        assert loaded_service.staged == before
        assert inventory_store.load_staged() == before

    def test_merge_empty_file_raises(self, loaded_service):
        with pytest.raises(NoHeadersError) as exc_info:
            loaded_service.merge_import("")

        assert exc_info.value.message == "New inventory CSV has no valid headers"

    def test_merge_requires_catalog(self, service):
        with pytest.raises(CatalogNotConfiguredError):
            service.merge_import("sku\nA1\n")


class TestSettings:
    """Tests for settings changes."""

    def test_update_key_column(self, loaded_service, inventory_store):
        result = loaded_service.update_settings(SettingsUpdate(sku_column="Name"))

        assert result.sku_column == "Name"
        assert inventory_store.load_settings().sku_column == "Name"

    def test_unknown_column_raises(self, loaded_service):
        with pytest.raises(UnknownColumnError):
            loaded_service.update_settings(SettingsUpdate(save_columns=["sku", "Bogus"]))

    def test_key_must_be_saved(self, loaded_service):
        with pytest.raises(KeyColumnNotSavedError):
            loaded_service.update_settings(SettingsUpdate(save_columns=["Name"]))

        assert loaded_service.save_columns == ["sku", "Name", "Price", "Cost"]

    def test_lists(self, loaded_service):
        result = loaded_service.update_settings(SettingsUpdate(lists=["spring"]))

        assert result.lists == ["spring"]
        assert result.sku_column == "sku"

    def test_toggle_save_column(self, loaded_service):
        assert loaded_service.toggle_save_column("Cost").save_columns == ["sku", "Name", "Price"]
        assert loaded_service.toggle_save_column("Cost").save_columns == ["sku", "Name", "Price", "Cost"]


class TestRestore:
    """Tests for session restore from the store."""

    def test_fresh_instance_restores_session(self, loaded_service, inventory_store, print_queue):
        loaded_service.stage(loaded_service.catalog[0])
        loaded_service.update_settings(SettingsUpdate(save_columns=["sku", "Name", "Price"]))

        restored = StagingService(store=inventory_store, print_queue=print_queue)

        assert restored.catalog == loaded_service.catalog
        assert restored.headers == ["sku", "Name", "Price", "Cost"]
        assert restored.staged == loaded_service.staged
        assert restored.save_columns == ["sku", "Name", "Price"]

    def test_empty_store(self, service):
        assert service.catalog == []
        assert service.staged == []
        assert not service.staging_settings.configured

    def test_corrupt_staged_value_ignored(self, memory_store, inventory_store, print_queue, catalog_csv):
        StagingService(store=inventory_store, print_queue=print_queue).import_catalog(catalog_csv)
        memory_store.set("newInventory", "{not json")

        restored = StagingService(store=inventory_store, print_queue=print_queue)

        assert restored.staged == []
        assert len(restored.catalog) == 3


class TestBlankKeys:
    """Whitespace-only keys are treated as empty."""

    def test_edit_to_whitespace_key_raises(self):
        with pytest.raises(MissingKeyError):
            edit_record([{"sku": "A1"}], "sku", "A1", {"sku": "   "}, ["sku"])

    def test_merge_skips_whitespace_key(self):
        rows = [{"sku": "  "}, {"sku": "B2"}]

        merged, added, skipped = merge_rows([], rows, ["sku"], "sku", ["sku"])

        assert merged == [{"sku": "B2"}]
        assert skipped == 1

    def test_create_whitespace_key_leaves_staged_unchanged(self, loaded_service):
        with pytest.raises(MissingKeyError):
            loaded_service.create_record({"sku": "  ", "Name": "X"})

        assert loaded_service.staged == []


class TestExportReimport:
    """Exported staged set reimported as a catalog gives the same records."""

    def reimport(self, service):
        exported = service.export_csv()
        kept = service.staging_settings
        result = service.import_catalog(exported, existing_settings=kept)
        return [project_record(r, kept.save_columns) for r in result.catalog]

    def test_awkward_values(self, service):
        records = [
            {"sku": "A1", "name": "Widget, large", "note": 'Say "hi"'},
            {"sku": " B2 ", "name": "two\nlines", "note": ""},
            {"sku": "C3", "name": "  padded  ", "note": "NA"},
        ]
        service.import_catalog(unparse_csv(records, ["sku", "name", "note"]))
        for record in service.catalog:
            service.stage(record)
        staged = list(service.staged)

        assert staged == records
        assert self.reimport(service) == staged

    def test_projection_subset(self, loaded_service):
        loaded_service.update_settings(SettingsUpdate(save_columns=["sku", "Cost"]))
        for record in loaded_service.catalog:
            loaded_service.stage(record)
        staged = list(loaded_service.staged)

        assert self.reimport(loaded_service) == staged

    def test_single_column(self, service):
        service.import_catalog("sku\n A1\nB2 \n")
        service.create_record({"sku": "x,y"})
        service.create_record({"sku": '"q"'})
        for record in service.catalog:
            service.stage(record)
        staged = list(service.staged)

        assert [r["sku"] for r in staged] == ["x,y", '"q"', " A1", "B2 "]
        assert self.reimport(service) == staged


class TestCatalogImportFailure:
    """A failed settings write leaves the stored catalog alone."""

    class SettingsWriteFails(MemoryStore):
        fail_settings = False

        def set(self, key, value):
            if key == SETTINGS_KEY and self.fail_settings:
                raise StoreError("disk full")
            super().set(key, value)

    def test_catalog_rolled_back(self, print_queue, catalog_csv):
        backend = self.SettingsWriteFails()
        store = InventoryStore(backend)
        service = StagingService(store=store, print_queue=print_queue)
        service.import_catalog(catalog_csv)
        backend.fail_settings = True

        with pytest.raises(StorageError):
            service.import_catalog("code,label\nZ1,Other\n")

        assert len(service.catalog) == 3
        assert service.key_column == "sku"
        assert store.load_catalog() == service.catalog
        assert store.load_settings().sku_column == "sku"


class TestTinyCost:
    """Search over a catalog row whose cost rounds to nothing."""

    def test_search_omits_margin(self, service):
        service.import_catalog("sku,Name,Price,Cost\nT1,Tack,$1.00,$0.004\n")

        result = service.search("T1")

        assert result.status == SearchStatus.FOUND
        assert result.margin is None


class TestPrintNotification:
    """Staging does not wait for the print queue."""

    def test_stage_returns_before_item_is_sent(self, inventory_store, catalog_csv):
        client = PrintQueueClient(url="http://printer.local/queue")
        release = threading.Event()
        sent = []

        def slow_post(url, json, timeout):
            release.wait(timeout=5)
            sent.append(json)
            return MagicMock(status_code=200)

        with patch("integrations.print_queue.requests.post", side_effect=slow_post):
            service = StagingService(store=inventory_store, print_queue=client)
            service.import_catalog(catalog_csv)

            assert service.stage(service.catalog[0])
            assert sent == []

            release.set()
            client.close()

        assert sent == [{"sku": "A1", "shelf_id": "unknown"}]
