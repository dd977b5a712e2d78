"""Tests for the read-only Cloud Control and EC2 data sources."""

from __future__ import annotations

import pytest

from provider_toolkit.common.errors import NotFoundError, ProviderError
from provider_toolkit.services.cloudcontrol import resource as cloudcontrol_resource
from provider_toolkit.services.ec2 import transit_gateway_route_table
from tests.aws_test_utils import make_client_error

TYPE_NAME = "AWS::Logs::LogGroup"


def test_cloudcontrol_optional_parameters(service_client):
    """Test optional type version and role are only sent when set."""
    service_client.get_resource.return_value = {"ResourceDescription": {"Identifier": "lg"}}

    cloudcontrol_resource.find_resource_by_id(service_client, "lg", TYPE_NAME)
    cloudcontrol_resource.find_resource_by_id(
        service_client, "lg", TYPE_NAME, "00000001", "arn:aws:iam::1:role/cc"
    )

    first, second = service_client.get_resource.call_args_list
    assert first.kwargs == {"Identifier": "lg", "TypeName": TYPE_NAME}
    assert second.kwargs == {
        "Identifier": "lg",
        "TypeName": TYPE_NAME,
        "TypeVersionId": "00000001",
        "RoleArn": "arn:aws:iam::1:role/cc",
    }


def test_cloudcontrol_read(service_client, aws_client_for):
    """Test read returns the resource properties document."""
    service_client.get_resource.return_value = {
        "ResourceDescription": {"Identifier": "lg", "Properties": '{"RetentionInDays":7}'}
    }

    state = cloudcontrol_resource.read(aws_client_for("cloudcontrol"), "lg", TYPE_NAME)

    assert state == {
        "id": "lg",
        "identifier": "lg",
        "type_name": TYPE_NAME,
        "properties": '{"RetentionInDays":7}',
    }


def test_cloudcontrol_not_found(service_client, aws_client_for):
    """Test a missing resource is an error for a data source."""
    service_client.get_resource.side_effect = make_client_error("ResourceNotFoundException")

    with pytest.raises(NotFoundError):
        cloudcontrol_resource.find_resource_by_id(service_client, "lg", TYPE_NAME)
    with pytest.raises(ProviderError, match=r"error reading Cloud Control API Resource \(lg\)"):
        cloudcontrol_resource.read(aws_client_for("cloudcontrol"), "lg", TYPE_NAME)


def test_build_filters():
    """Test filters become sorted Name/Values pairs."""
    assert transit_gateway_route_table.build_filters({"tag:env": "prod", "state": ["available"]}) == [
        {"Name": "state", "Values": ["available"]},
        {"Name": "tag:env", "Values": ["prod"]},
    ]


def test_transit_gateway_route_table_read(service_client, aws_client_for):
    """Test read returns one route table with filtered tags."""
    service_client.describe_transit_gateway_route_tables.return_value = {
        "TransitGatewayRouteTables": [
            {
                "TransitGatewayRouteTableId": "tgw-rtb-1",
                "TransitGatewayId": "tgw-1",
                "DefaultAssociationRouteTable": True,
                "DefaultPropagationRouteTable": False,
                "Tags": [{"Key": "Name", "Value": "main"}, {"Key": "aws:x", "Value": "y"}],
            }
        ]
    }

    state = transit_gateway_route_table.read(aws_client_for("ec2"), route_table_id="tgw-rtb-1")

    service_client.describe_transit_gateway_route_tables.assert_called_once_with(
        TransitGatewayRouteTableIds=["tgw-rtb-1"]
    )
    assert state == {
        "id": "tgw-rtb-1",
        "transit_gateway_id": "tgw-1",
        "default_association_route_table": True,
        "default_propagation_route_table": False,
        "tags": {"Name": "main"},
    }


@pytest.mark.parametrize(
    "tables,message",
    [
        ([], "no results found"),
        ([{"TransitGatewayRouteTableId": "a"}, {"TransitGatewayRouteTableId": "b"}], "multiple results"),
    ],
)
def test_transit_gateway_route_table_requires_single_match(
    service_client, aws_client_for, tables, message
):
    """Test read rejects zero or several matches."""
    service_client.describe_transit_gateway_route_tables.return_value = {
        "TransitGatewayRouteTables": tables
    }

    with pytest.raises(ProviderError, match=message):
        transit_gateway_route_table.read(aws_client_for("ec2"), filters={"state": "available"})
