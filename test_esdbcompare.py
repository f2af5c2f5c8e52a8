"""Tests for the ES/DB comparison engine."""

import json

import pytest
from esdbcompare import (
    ChangeType,
    CompareConfig,
    CompareEngine,
    ComparisonRunner,
    ConfigError,
    DeltaType,
    DuplicatePathError,
    EntityNotFoundError,
    ErrorResponse,
    LogLevel,
    RawDelta,
    Report,
    ValidationError,
    compare,
    load_config,
    run_compare,
)
from esdbcompare.models import DataType, Identity


def sample_snapshots():
    db = [
        {
            "id": 1,
            "name": "A",
            "updatedAt": "2024-01-01T00:00:00Z",
            "members": [{"id": 9, "name": "x"}, {"id": 10, "name": "y"}],
            "phases": [
                {"id": 5, "name": "design", "products": [{"id": 50, "price": 1}, {"id": 51, "price": 2}]},
            ],
        },
        {"id": 2, "name": "two"},
    ]
    es = [
        {"id": 3, "name": "three"},
        {
            "id": 1,
            "name": "B",
            "updatedAt": "2024-02-01T00:00:00Z",
            "members": [{"id": 11, "name": "w"}, {"id": 10, "name": "z"}],
            "phases": [
                {"id": 5, "name": "design", "products": [{"id": 50, "price": 3}]},
            ],
        },
    ]
    return db, es


class TestScenarios:
    """Test end-to-end comparison scenarios."""

    def setup_method(self):
        self.engine = CompareEngine()

    def test_identical_snapshots(self):
        db, _ = sample_snapshots()
        report = self.engine.compare(db, json.loads(json.dumps(db)))

        assert report.is_consistent
        assert report.meta.total_projects == 0
        assert report.root_mismatch == {}

    def test_project_only_in_db(self):
        """Project present only in the system of record."""
        report = self.engine.compare([{"id": 1}], [])

        assert len(report.db_only) == 1
        assert report.db_only[0].model_name == "Project"
        assert report.db_only[0].id == 1
        assert report.db_only[0].db_copy == {"id": 1}
        assert report.es_only == []
        assert report.meta.total_projects == 1
        assert report.meta.total_objects == 1

    def test_project_field_mismatch(self):
        """Project on both sides differing in one field."""
        report = self.engine.compare([{"id": 1, "name": "A"}], [{"id": 1, "name": "B"}])

        bucket = report.root_mismatch[1]
        assert len(bucket.entity) == 1
        delta = bucket.entity[0]
        assert delta.type == DeltaType.MISMATCH
        assert delta.kind == ChangeType.MODIFY
        assert delta.path == "name"
        assert delta.db_copy["name"] == "A"
        assert delta.es_copy["name"] == "B"
        assert bucket.counts == 1

    def test_member_only_in_db(self):
        """Member removed from the indexed copy."""
        report = self.engine.compare(
            [{"id": 1, "members": [{"id": 9, "name": "x"}]}],
            [{"id": 1, "members": []}],
        )

        members = report.root_mismatch[1].associations["Member"]
        assert [(d.type, d.id, d.project_id) for d in members.db_only] == [
            (DeltaType.DB_ONLY, 9, 1)
        ]
        assert members.counts == 1
        assert report.meta.total_objects == 1

    def test_members_field_missing_in_es(self):
        """A collection left out of the indexed copy reports each of its entities."""
        report = self.engine.compare(
            [{"id": 1, "members": [{"id": 9, "name": "x"}]}],
            [{"id": 1}],
        )

        bucket = report.root_mismatch[1]
        assert bucket.entity == []
        members = bucket.associations["Member"]
        assert [(d.type, d.id, d.project_id) for d in members.db_only] == [
            (DeltaType.DB_ONLY, 9, 1)
        ]
        assert members.counts == 1
        assert report.meta.total_objects == 1

    def test_missing_and_null_collection_agree(self):
        """Absent and null collections give the same association entries."""
        db = [{"id": 1, "phases": [{"id": 5, "products": [{"id": 50, "price": 1}]}]}]

        absent = self.engine.compare(db, [{"id": 1, "phases": [{"id": 5}]}])
        null = self.engine.compare(db, [{"id": 1, "phases": [{"id": 5, "products": None}]}])

        for report in (absent, null):
            products = report.root_mismatch[1].associations["Product"]
            assert [d.id for d in products.db_only] == [50]
        assert absent.meta.total_objects == 1

    def test_member_replaced_by_another(self):
        """Different identities at the same collection are not one mismatch."""
        report = self.engine.compare(
            [{"id": 1, "members": [{"id": 9, "name": "x"}]}],
            [{"id": 1, "members": [{"id": 10, "name": "x"}]}],
        )

        members = report.root_mismatch[1].associations["Member"]
        assert members.mismatches == {}
        assert [d.id for d in members.db_only] == [9]
        assert [d.id for d in members.es_only] == [10]
        assert members.counts == 2

    def test_product_field_mismatch(self):
        """Product nested in a phase differing in one field."""
        db = [{"id": 1, "phases": [{"id": 5, "products": [{"id": 50, "name": "p"}, {"id": 51}]}]}]
        es = [{"id": 1, "phases": [{"id": 5, "products": [{"id": 51}, {"id": 50, "name": "q"}]}]}]

        report = self.engine.compare(db, es)

        products = report.root_mismatch[1].associations["Product"]
        [delta] = products.mismatches[50]
        assert delta.model_name == "Product"
        assert delta.project_id == 1
        assert delta.id == 50
        assert delta.path == "name"
        assert delta.db_copy == {"id": 50, "name": "p"}
        assert delta.es_copy == {"id": 50, "name": "q"}
        assert report.meta.total_objects == 1

    def test_member_with_several_fields(self):
        """Several differing fields on one member count once."""
        report = self.engine.compare(
            [{"id": 1, "members": [{"id": 9, "name": "x", "role": "customer"}]}],
            [{"id": 1, "members": [{"id": 9, "name": "y", "role": "manager"}]}],
        )

        members = report.root_mismatch[1].associations["Member"]
        assert sorted(d.path for d in members.mismatches[9]) == ["name", "role"]
        assert members.counts == 1
        assert report.meta.total_objects == 1

    def test_volatile_fields_ignored(self):
        report = self.engine.compare(
            [{"id": 1, "updatedAt": "t1", "members": [{"id": 9, "updatedBy": 1}]}],
            [{"id": 1, "updatedAt": "t2", "members": [{"id": 9, "updatedBy": 2}]}],
        )

        assert report.is_consistent
        assert report.meta.ignored == 2

    def test_element_modified_in_place_is_counted_as_dropped(self):
        report = self.engine.compare(
            [{"id": 1, "members": [{"name": "x"}]}],
            [{"id": 1, "members": [{"name": "y"}]}],
        )

        assert report.is_consistent
        assert report.meta.dropped == 1


class TestReport:
    """Test the aggregated report of a mixed comparison."""

    def setup_method(self):
        db, es = sample_snapshots()
        self.report = compare(db, es)

    def test_top_level_lists(self):
        assert [d.id for d in self.report.db_only] == [2]
        assert [d.id for d in self.report.es_only] == [3]

    def test_associations(self):
        bucket = self.report.root_mismatch[1]
        assert [d.path for d in bucket.entity] == ["name"]

        members = bucket.associations["Member"]
        assert list(members.mismatches) == [10]
        assert [d.id for d in members.es_only] == [11]
        assert [d.id for d in members.db_only] == [9]
        assert members.counts == 3

        products = bucket.associations["Product"]
        assert list(products.mismatches) == [50]
        assert [d.id for d in products.db_only] == [51]
        assert products.counts == 2

        assert bucket.counts == 6

    def test_totals(self):
        assert self.report.meta.total_objects == 8
        assert self.report.meta.total_projects == 3
        assert self.report.meta.ignored == 1

    def test_count_consistency(self):
        """Every inconsistency is counted exactly once."""
        report = self.report
        entries = len(report.es_only) + len(report.db_only)
        for bucket in report.root_mismatch.values():
            entries += 1 if bucket.entity else 0
            for association in bucket.associations.values():
                entries += len(association.mismatches)
                entries += len(association.es_only) + len(association.db_only)
        assert report.meta.total_objects == entries

    def test_copy_pool(self):
        db_keys = [d.copy_key for d in self.report.copies.db_copies]
        es_keys = [d.copy_key for d in self.report.copies.es_copies]

        assert len(db_keys) == len(set(db_keys)) == 6
        assert len(es_keys) == len(set(es_keys)) == 5
        assert ("Product", 51) in db_keys
        assert ("Member", 11) in es_keys

    def test_to_dict(self):
        result = json.loads(json.dumps(self.report.to_dict()))

        assert result["meta"]["totalObjects"] == 8
        assert result["meta"]["totalProjects"] == 3
        assert result["dbOnly"][0]["modelName"] == "Project"
        member = result["rootMismatch"]["1"]["associations"]["Member"]
        assert member["meta"]["counts"] == 3
        assert member["mismatches"]["10"][0]["path"] == "name"
        assert member["mismatches"]["10"][0]["kind"] == "modify"
        assert {c["modelName"] for c in result["meta"]["dbCopies"]} == {
            "Project", "Member", "Product",
        }
        assert result["execution"]["engine_version"] == CompareEngine.VERSION


class TestErrors:
    """Test fatal errors and input validation."""

    def setup_method(self):
        self.engine = CompareEngine()

    def test_inputs_must_be_lists(self):
        with pytest.raises(ValidationError):
            self.engine.compare({"id": 1}, [])
        with pytest.raises(ValidationError):
            self.engine.compare([], None)

    def test_duplicate_path_aborts_run(self):
        """A malformed diff aborts the run instead of producing a report."""
        path = (Identity(1), "tags", 0)

        class BrokenDiffer:
            def diff(self, left, right):
                return [
                    RawDelta(path, ChangeType.DELETE, DataType.ARRAY, original_value="a"),
                    RawDelta(path, ChangeType.ADD, DataType.ARRAY, value="b"),
                    RawDelta(path, ChangeType.ADD, DataType.ARRAY, value="c"),
                ]

            def apply(self, base, deltas):
                return base

        self.engine.differ = BrokenDiffer()
        with pytest.raises(DuplicatePathError):
            self.engine.compare([{"id": 1, "tags": ["a"]}], [{"id": 1, "tags": ["b"]}])


    def test_entity_without_identity_aborts_run(self):
        """A removed member with no id cannot be attributed and aborts the run."""
        with pytest.raises(EntityNotFoundError) as exc_info:
            self.engine.compare(
                [{"id": 1, "members": [{"name": "x"}]}],
                [{"id": 1, "members": []}],
            )
        assert exc_info.value.model_name == "Member"
        assert exc_info.value.path == "$[?(@.id==1)].members[0]"


class TestConfig:
    """Test configuration loading."""

    def test_defaults(self):
        config = CompareConfig()
        assert config.associations["phases"] == "Phase"
        assert config.nested_associations["phases"] == ("products", "Product")
        assert "$..updatedAt" in config.ignored_paths["project"]
        assert config.log_level == LogLevel.INFO

    def test_from_dict(self):
        config = CompareConfig.from_dict({
            "log_level": "debug",
            "associations": {"phases": "Phase", "members": "Member"},
            "nested_associations": {"phases": {"collection": "products", "model": "Product"}},
            "ignored_paths": {"project": ["$..lastSeen"]},
        })

        assert config.log_level == LogLevel.DEBUG
        assert config.nested_associations == {"phases": ("products", "Product")}
        assert config.ignored_paths == {"project": ["$..lastSeen"]}

    def test_unknown_key(self):
        with pytest.raises(ConfigError) as exc_info:
            CompareConfig.from_dict({"associaitons": {}})
        assert exc_info.value.key == "associaitons"

    def test_nested_association_must_be_configured(self):
        with pytest.raises(ConfigError):
            CompareConfig.from_dict({"associations": {"members": "Member"}})

    def test_invalid_log_level(self):
        with pytest.raises(ConfigError):
            CompareConfig.from_dict({"log_level": "loud"})

    def test_warn_maps_to_warning(self):
        import logging
        assert LogLevel.WARN.to_logging() == logging.WARNING
        assert LogLevel.DEBUG.to_logging() == logging.DEBUG

    def test_load_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "log_level: WARN\n"
            "ignored_paths:\n"
            "  project:\n"
            "    - $..updatedAt\n"
            "    - $[*].members[*].handle\n"
        )

        config = load_config(str(path))
        assert config.log_level == LogLevel.WARN
        assert config.ignored_paths["project"][1] == "$[*].members[*].handle"

    def test_custom_ignore_rules_used(self):
        config = CompareConfig(ignored_paths={"project": ["$..name"]})
        report = CompareEngine(config).compare(
            [{"id": 1, "name": "A", "updatedAt": "t1"}],
            [{"id": 1, "name": "B", "updatedAt": "t2"}],
        )

        assert [d.path for d in report.root_mismatch[1].entity] == ["updatedAt"]


class TestRunner:
    """Test comparing snapshot files."""

    def write_snapshots(self, tmp_path, db, es):
        db_path = tmp_path / "db.json"
        es_path = tmp_path / "es.json"
        db_path.write_text(json.dumps(db))
        es_path.write_text(json.dumps(es))
        return str(db_path), str(es_path)

    def test_run(self, tmp_path):
        db, es = sample_snapshots()
        db_path, es_path = self.write_snapshots(tmp_path, db, es)

        result = run_compare(db_path, es_path)

        assert isinstance(result, Report)
        assert result.meta.total_objects == 8

    def test_run_with_config(self, tmp_path):
        db_path, es_path = self.write_snapshots(
            tmp_path,
            [{"id": 1, "name": "A"}],
            [{"id": 1, "name": "B"}],
        )
        config_path = tmp_path / "config.yaml"
        config_path.write_text("ignored_paths:\n  project:\n    - $..name\n")

        result = ComparisonRunner(str(config_path)).run(db_path, es_path)

        assert isinstance(result, Report)
        assert result.is_consistent

    def test_invalid_snapshot(self, tmp_path):
        db_path, es_path = self.write_snapshots(tmp_path, {"id": 1}, [])

        result = run_compare(db_path, es_path)

        assert isinstance(result, ErrorResponse)
        assert result.error["code"] == "VALIDATION_ERROR"
        assert result.to_dict()["success"] is False

    def test_invalid_config(self, tmp_path):
        db_path, es_path = self.write_snapshots(tmp_path, [], [])
        config_path = tmp_path / "config.yaml"
        config_path.write_text("colour: blue\n")

        result = run_compare(db_path, es_path, str(config_path))

        assert isinstance(result, ErrorResponse)
        assert result.error["code"] == "CONFIG_ERROR"

    def test_unresolvable_entity(self, tmp_path):
        db_path, es_path = self.write_snapshots(
            tmp_path,
            [{"id": 1, "members": [{"name": "x"}]}],
            [{"id": 1, "members": []}],
        )

        result = run_compare(db_path, es_path)

        assert isinstance(result, ErrorResponse)
        assert result.error["code"] == "INTERNAL_CONSISTENCY_ERROR"
        assert result.error["details"]["type"] == "EntityNotFoundError"
        assert "rootMismatch" not in result.to_dict()

    def test_missing_snapshot(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            run_compare(str(tmp_path / "db.json"), str(tmp_path / "es.json"))
