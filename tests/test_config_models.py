import pytest
from saltmaster.config.models import Facility, Plan, ProvisioningRequest
from saltmaster.core.errors import ConfigurationError


def test_request_from_dict(stack_config):
    request = ProvisioningRequest.from_dict("dev", stack_config)

    assert request.project_id == "proj-123"
    assert request.facility is Facility.SJC1
    assert request.plan is Plan.C3_SMALL_X86
    assert request.hostname == "dev-salt-master"
    assert request.teleport_domain == "teleport.example.com"
    assert request.github.username == "octocat"
    assert request.storage.bucket_location == "us-west-2"


def test_missing_zone(stack_config):
    del stack_config["zone"]

    with pytest.raises(ConfigurationError, match="config.zone"):
        ProvisioningRequest.from_dict("dev", stack_config)


def test_missing_section(stack_config):
    del stack_config["teleport"]

    with pytest.raises(ConfigurationError, match="section 'teleport'") as excinfo:
        ProvisioningRequest.from_dict("dev", stack_config)

    assert excinfo.value.details == {"section": "teleport"}


def test_blank_value_is_missing(stack_config):
    stack_config["github"]["accessToken"] = "  "

    with pytest.raises(ConfigurationError, match="github.accessToken"):
        ProvisioningRequest.from_dict("dev", stack_config)


def test_section_must_be_mapping(stack_config):
    stack_config["aws"] = "bucket"

    with pytest.raises(ConfigurationError, match="must be a mapping"):
        ProvisioningRequest.from_dict("dev", stack_config)


def test_invalid_facility(stack_config):
    stack_config["saltMaster"]["facility"] = "mars1"

    with pytest.raises(ConfigurationError, match="Invalid value 'mars1'"):
        ProvisioningRequest.from_dict("dev", stack_config)


def test_stack_name_required(stack_config):
    with pytest.raises(ConfigurationError, match="Stack name"):
        ProvisioningRequest.from_dict("", stack_config)
