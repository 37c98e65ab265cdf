"""Tests for the diff report models."""

import json

import pytest

from cdk_cost_guardian.diff.models import (
    ChangeReport,
    ResourceChange,
    clean_id,
    environment_for,
    load_change_report,
    short_type,
)
from cdk_cost_guardian.exceptions import InputError


class TestHelpers:
    """Tests for ID and type display helpers."""

    def test_clean_id_drops_hash_and_splits_camel_case(self):
        """Test that the CDK hash suffix is dropped and words split."""
        assert clean_id("MyBucketF68F3FF0") == "My Bucket"

    def test_clean_id_without_hash(self):
        """Test that IDs without a hash suffix are kept."""
        assert clean_id("Worker") == "Worker"

    def test_short_type(self):
        """Test the last segment of namespaced types."""
        assert short_type("AWS::EC2::Instance") == "Instance"
        assert short_type("Compute::Instance") == "Instance"
        assert short_type("Bucket") == "Bucket"

    @pytest.mark.parametrize(
        "stack_name,expected",
        [
            ("ApiProdStack", "production"),
            ("api-staging", "staging"),
            ("FeatureStack", "dev"),
        ],
    )
    def test_environment_for(self, stack_name, expected):
        """Test environment detection from stack names."""
        assert environment_for(stack_name) == expected


class TestResourceChange:
    """Tests for resource change parsing."""

    def test_accepts_toolkit_key_names(self):
        """Test that raw toolkit key names are accepted."""
        resource = ResourceChange.model_validate(
            {
                "logicalId": "Db",
                "resourceType": "AWS::RDS::DBInstance",
                "action": "UPDATE",
                "properties": [
                    {
                        "name": "DBInstanceClass",
                        "oldValue": "db.t3.small",
                        "newValue": "db.t3.large",
                        "changeImpact": "WILL_REPLACE",
                    }
                ],
            }
        )

        assert resource.resource_type == "AWS::RDS::DBInstance"
        assert resource.will_replace is True
        assert resource.get_property("DBInstanceClass").new_value == "db.t3.large"
        assert resource.get_property("Engine") is None

    def test_property_impact_defaults_to_unknown(self):
        """Test the default property impact."""
        resource = ResourceChange.model_validate(
            {"logicalId": "Q", "type": "AWS::SQS::Queue", "action": "ADD",
             "properties": [{"name": "DelaySeconds"}]}
        )
        assert resource.properties[0].impact == "UNKNOWN"
        assert resource.will_replace is False

    def test_rejects_unknown_action(self):
        """Test that unknown actions fail validation."""
        with pytest.raises(ValueError):
            ResourceChange.model_validate(
                {"logicalId": "Q", "type": "AWS::SQS::Queue", "action": "IMPORT"}
            )


class TestChangeReport:
    """Tests for report-level helpers."""

    def test_counts_and_changed_stacks(self, sample_diff_dict):
        """Test action counts and changed/unchanged stack split."""
        sample_diff_dict["stacks"].append(
            {"stackName": "Quiet", "hasDifferences": False, "resources": []}
        )
        report = ChangeReport.model_validate(sample_diff_dict)

        assert [s.stack_name for s in report.changed_stacks] == ["Net"]
        assert [s.stack_name for s in report.unchanged_stacks] == ["Quiet"]
        assert report.count("ADD") == 3
        assert report.count("UPDATE") == 1
        assert report.count("REMOVE") == 0

    def test_by_action_keeps_order(self, sample_diff_dict):
        """Test that grouping by action keeps report order."""
        stack = ChangeReport.model_validate(sample_diff_dict).stacks[0]
        grouped = stack.by_action()

        assert list(grouped) == ["ADD", "UPDATE", "REMOVE"]
        assert [r.logical_id for r in grouped["ADD"]] == ["WebServer1A2B3C4D", "AppRole", "Broker"]
        assert grouped["REMOVE"] == []

    def test_combine_merges_accounts(self):
        """Test merging per-account reports."""
        first = ChangeReport.model_validate(
            {"success": True, "stacks": [{"stackName": "A", "hasDiff": True}]}
        )
        second = ChangeReport.model_validate(
            {"success": False, "error": "access denied", "stacks": [{"stackName": "B"}]}
        )

        combined = ChangeReport.combine([first, second])

        assert combined.success is False
        assert combined.error == "access denied"
        assert [s.stack_name for s in combined.stacks] == ["A", "B"]

    def test_combine_all_successful(self):
        """Test that combining successful reports stays successful."""
        combined = ChangeReport.combine([ChangeReport(), ChangeReport()])
        assert combined.success is True
        assert combined.error is None

    def test_drift_is_optional(self, sample_diff_dict):
        """Test that stacks carry drift results only when detection ran."""
        sample_diff_dict["stacks"].append(
            {"stackName": "Drifty", "hasDiff": True, "drift": {"status": "DRIFTED", "count": 2}}
        )
        report = ChangeReport.model_validate(sample_diff_dict)

        assert report.stacks[0].drift is None
        assert report.stacks[1].drift.drifted is True
        assert report.stacks[1].drift.count == 2

    def test_rejects_unknown_drift_status(self):
        """Test that unknown drift statuses are input errors."""
        with pytest.raises(InputError):
            load_change_report(
                {"stacks": [{"stackName": "A", "drift": {"status": "MAYBE"}}]}
            )


class TestLoadChangeReport:
    """Tests for parsing report documents."""

    def test_from_json_text(self, sample_diff_dict):
        """Test parsing a report from JSON text."""
        report = load_change_report(json.dumps(sample_diff_dict))
        assert report.stacks[0].stack_name == "Net"
        assert len(report.stacks[0].resources) == 4

    def test_invalid_json(self):
        """Test that invalid JSON raises InputError."""
        with pytest.raises(InputError, match="not valid JSON"):
            load_change_report("{not json")

    def test_undecodable_bytes(self):
        """Test that bytes in no JSON encoding raise InputError."""
        with pytest.raises(InputError, match="not valid JSON"):
            load_change_report(b"\xff\xfe{")

    def test_non_object(self):
        """Test that a non-object document raises InputError."""
        with pytest.raises(InputError, match="JSON object"):
            load_change_report("[1, 2]")

    def test_schema_violation(self):
        """Test that schema violations raise InputError."""
        with pytest.raises(InputError, match="Malformed change report"):
            load_change_report({"stacks": [{"resources": []}]})
