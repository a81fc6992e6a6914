"""
Tests for record models and the submission DTO.

Covers key derivation, defaults, extension map validation, DynamoDB item
conversion, and how a submission's nested bags become records.
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from deployment_tracker.exceptions import ValidationError
from deployment_tracker.models import (
    MAX_EXTENSION_ATTRIBUTES,
    CustomerRecord,
    DeploymentRecord,
    DeploymentSubmission,
    EndpointRecord,
    EnvironmentRecord,
    RecordKind,
    ResourceRecord,
    build_record,
    with_keys,
)

STAMP = "17000000000000000abababab"
CREATED_AT = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)


class TestKeyDerivation:

    def test_customer_keys(self):
        record = CustomerRecord(customerId="C1")

        assert record.build_partition_key() == "C1"
        assert record.build_row_key() == "C1"
        assert record.append_only is False

    def test_environment_keys(self):
        record = EnvironmentRecord(customerId="C1", environmentId="E1")

        assert record.build_partition_key() == "C1"
        assert record.build_row_key() == "E1"
        assert record.append_only is False

    def test_deployment_keys(self):
        record = DeploymentRecord(customerId="C1", environmentId="E1")

        assert record.build_partition_key() == "C1"
        assert record.build_row_key(STAMP) == f"{STAMP}_E1"
        assert record.append_only is True

    def test_append_only_row_key_requires_stamp(self):
        record = DeploymentRecord(customerId="C1", environmentId="E1")

        with pytest.raises(ValidationError, match="requires a creation stamp"):
            record.build_row_key()

    def test_resource_keys(self):
        record = ResourceRecord(resourceType="vm", deploymentId=f"{STAMP}_E1")

        assert record.build_partition_key() == f"{STAMP}_E1"
        assert record.build_row_key(STAMP) == f"vm_{STAMP}"

    def test_resource_requires_parent_deployment(self):
        record = ResourceRecord(resourceType="vm")

        with pytest.raises(ValidationError, match="parent deployment key"):
            record.build_partition_key()

    def test_endpoint_keys(self):
        record = EndpointRecord(customerId="C1", serviceType="crm")

        assert record.build_partition_key() == "C1"
        assert record.build_row_key(STAMP) == f"crm_{STAMP}"

    def test_snake_case_field_names_accepted(self):
        record = EnvironmentRecord(customer_id="C1", environment_id="E1")

        assert record.customer_id == "C1"
        assert record.environment_id == "E1"


class TestDefaults:

    def test_deployment_defaults(self):
        record = DeploymentRecord(customerId="C1", environmentId="E1")

        assert record.deployment_type == "Initial"
        assert record.status == "InProgress"

    def test_resource_and_endpoint_status_defaults(self):
        assert ResourceRecord(resourceType="vm").status == "Deployed"
        assert EndpointRecord(customerId="C1", serviceType="crm").status == "Active"

    def test_status_can_be_overridden(self):
        assert ResourceRecord(resourceType="vm", status="Pending").status == "Pending"

    def test_kinds(self):
        assert CustomerRecord.kind is RecordKind.CUSTOMER
        assert ResourceRecord.kind is RecordKind.RESOURCE


class TestTableItem:

    def test_customer_item(self):
        record = CustomerRecord(customerId="C1", name="Acme Corp")

        item = record.to_table_item(None, CREATED_AT)

        assert item == {
            'customer_id': 'C1',
            'name': 'Acme Corp',
            'partition_key': 'C1',
            'row_key': 'C1',
            'created_at': '2024-05-01T12:30:00+00:00',
            'record_kind': 'Customer',
        }

    def test_extension_attributes_pass_through_unchanged(self):
        record = ResourceRecord(
            resourceType="vm",
            deploymentId="D1",
            skuName="Standard_D2s",
            tags={"team": "platform"},
            zones=["1", "2"],
        )

        item = record.to_table_item(STAMP, CREATED_AT)

        assert item['skuName'] == "Standard_D2s"
        assert item['tags'] == {"team": "platform"}
        assert item['zones'] == ["1", "2"]
        assert record.extensions == {
            'skuName': "Standard_D2s",
            'tags': {"team": "platform"},
            'zones': ["1", "2"],
        }

    def test_floats_become_decimals(self):
        record = CustomerRecord(customerId="C1", score=4.5, limits={"cpu": 0.25})

        item = record.to_dynamodb_item()

        assert item['score'] == Decimal("4.5")
        assert isinstance(item['score'], Decimal)
        assert item['limits']['cpu'] == Decimal("0.25")

    def test_booleans_and_ints_kept(self):
        item = CustomerRecord(customerId="C1", active=True, seats=10).to_dynamodb_item()

        assert item['active'] is True
        assert item['seats'] == 10

    def test_none_values_dropped(self):
        item = ResourceRecord(resourceType="vm", deploymentId="D1", note=None).to_dynamodb_item()

        assert 'note' not in item
        assert 'customer_id' not in item


class TestExtensionValidation:

    @pytest.mark.parametrize('reserved', ['partition_key', 'rowKey', 'created_at', 'recordKind'])
    def test_reserved_names_rejected(self, reserved):
        with pytest.raises(ValidationError) as exc_info:
            build_record(CustomerRecord, {'customerId': 'C1', reserved: 'x'})

        assert 'reserved attribute name' in exc_info.value.message

    def test_malformed_names_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            build_record(CustomerRecord, {'customerId': 'C1', 'bad-name': 'x'})

        assert 'bad-name' in exc_info.value.message

    def test_extension_count_is_bounded(self):
        attributes = {'customerId': 'C1'}
        attributes.update({f"attr{i}": i for i in range(MAX_EXTENSION_ATTRIBUTES + 1)})

        with pytest.raises(ValidationError, match="extension attributes given"):
            build_record(CustomerRecord, attributes)

    def test_extension_count_at_limit_accepted(self):
        attributes = {'customerId': 'C1'}
        attributes.update({f"attr{i}": i for i in range(MAX_EXTENSION_ATTRIBUTES)})

        record = build_record(CustomerRecord, attributes)

        assert len(record.extensions) == MAX_EXTENSION_ATTRIBUTES

    def test_core_field_repeated_under_other_spelling_rejected(self):
        with pytest.raises(ValidationError) as exc_info:
            build_record(ResourceRecord, {'resourceType': 'vm', 'resource_type': 'db', 'deploymentId': 'D1'})

        assert 'resource_type: duplicates a core field' in exc_info.value.message

    @pytest.mark.parametrize('value', [float('nan'), float('inf'), float('-inf'), Decimal('NaN')])
    def test_non_finite_numbers_rejected(self, value):
        with pytest.raises(ValidationError) as exc_info:
            build_record(CustomerRecord, {'customerId': 'C1', 'score': value})

        assert 'score: NaN and infinite numbers cannot be stored' in exc_info.value.message

    def test_nested_number_reported_with_path(self):
        with pytest.raises(ValidationError) as exc_info:
            build_record(ResourceRecord, {
                'resourceType': 'vm',
                'deploymentId': 'D1',
                'limits': {'cpu': float('inf'), 'zones': [1, 2]},
            })

        assert 'limits.cpu' in exc_info.value.message

    def test_number_in_list_reported_with_index(self):
        with pytest.raises(ValidationError, match=r"zones\[1\]"):
            build_record(CustomerRecord, {'customerId': 'C1', 'zones': [1, float('nan')]})

    def test_too_many_digits_rejected(self):
        with pytest.raises(ValidationError, match="38 significant digits"):
            build_record(CustomerRecord, {'customerId': 'C1', 'seats': 10 ** 40})

    def test_out_of_range_magnitude_rejected(self):
        with pytest.raises(ValidationError, match="outside the storable range"):
            build_record(CustomerRecord, {'customerId': 'C1', 'budget': Decimal('1E+200')})

    @pytest.mark.parametrize('value', [10 ** 37, Decimal('1' * 38), 0, 0.0, 2.5, True, -17])
    def test_storable_numbers_accepted(self, value):
        record = build_record(CustomerRecord, {'customerId': 'C1', 'score': value})

        assert record.extensions['score'] == value

    def test_missing_key_field_reported_with_location(self):
        with pytest.raises(ValidationError) as exc_info:
            build_record(ResourceRecord, {'sku': 'x'}, 'resources[2]')

        assert 'resources[2].resourceType' in exc_info.value.errors

    def test_blank_key_field_rejected(self):
        with pytest.raises(ValidationError):
            build_record(CustomerRecord, {'customerId': '   '})

    def test_non_string_key_field_rejected(self):
        with pytest.raises(ValidationError):
            build_record(EndpointRecord, {'customerId': 'C1', 'serviceType': 42})

    def test_non_object_rejected(self):
        with pytest.raises(ValidationError, match="must be an object"):
            build_record(CustomerRecord, ["C1"])


class TestWithKeys:

    def test_forces_keys_over_both_spellings(self):
        merged = with_keys({'customerId': 'OTHER', 'customer_id': 'X', 'name': 'n'}, customerId='C1')

        assert merged == {'name': 'n', 'customerId': 'C1'}

    def test_does_not_mutate_input(self):
        details = {'name': 'n'}

        with_keys(details, customerId='C1')

        assert details == {'name': 'n'}

    def test_none_details(self):
        assert with_keys(None, customerId='C1') == {'customerId': 'C1'}


class TestDeploymentSubmission:

    def test_minimal_submission(self):
        submission = DeploymentSubmission.model_validate({'customerId': 'C1', 'environmentId': 'E1'})

        assert submission.deployment_type == "Initial"
        assert submission.customer_record() is None
        assert submission.environment_record() is None
        assert submission.resource_records() == []
        assert submission.endpoint_records() == []

    @pytest.mark.parametrize('value', [None, ""])
    def test_empty_deployment_type_defaults_to_initial(self, value):
        submission = DeploymentSubmission.model_validate(
            {'customerId': 'C1', 'environmentId': 'E1', 'deploymentType': value}
        )

        assert submission.deployment_record().deployment_type == "Initial"

    def test_deployment_record_carries_details(self):
        submission = DeploymentSubmission.model_validate({
            'customerId': 'C1',
            'environmentId': 'E1',
            'deploymentType': 'Rollback',
            'deploymentDetails': {'version': '1.2.3', 'customerId': 'SPOOFED'},
        })

        record = submission.deployment_record()

        assert record.customer_id == 'C1'
        assert record.environment_id == 'E1'
        assert record.deployment_type == 'Rollback'
        assert record.extensions == {'version': '1.2.3'}

    def test_details_become_records(self, full_submission):
        submission = DeploymentSubmission.model_validate(full_submission)

        customer = submission.customer_record()
        environment = submission.environment_record()

        assert customer.customer_id == 'C1'
        assert customer.extensions == {'name': 'Acme Corp', 'tier': 'gold'}
        assert environment.environment_id == 'E1'
        assert environment.extensions == {'region': 'eastus', 'stage': 'prod'}

    def test_resources_and_endpoints_keep_input_order(self, full_submission):
        submission = DeploymentSubmission.model_validate(full_submission)

        resources = submission.resource_records()
        endpoints = submission.endpoint_records()

        assert [r.resource_type for r in resources] == ['vm', 'db']
        assert all(r.customer_id == 'C1' for r in resources)
        assert all(r.deployment_id is None for r in resources)
        assert [e.service_type for e in endpoints] == ['crm']

    def test_null_lists_treated_as_absent(self):
        submission = DeploymentSubmission.model_validate(
            {'customerId': 'C1', 'environmentId': 'E1', 'resources': None, 'endpoints': None}
        )

        assert submission.resources == []
        assert submission.endpoints == []

    def test_resource_without_type_rejected_with_index(self):
        submission = DeploymentSubmission.model_validate({
            'customerId': 'C1',
            'environmentId': 'E1',
            'resources': [{'resourceType': 'vm'}, {'sku': 'x'}],
        })

        with pytest.raises(ValidationError) as exc_info:
            submission.resource_records()

        assert 'resources[1].resourceType' in exc_info.value.errors
