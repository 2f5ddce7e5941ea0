"""Unit tests for Network Stack."""
import aws_cdk as cdk
from aws_cdk.assertions import Match, Template
import pytest

from network_topology_cdk.stacks.network_stack import NetworkStack


def _synth(graph) -> Template:
    app = cdk.App()
    stack = NetworkStack(
        app,
        "TestNetworkStack",
        graph=graph,
        env=cdk.Environment(account="123456789012", region=graph.region),
    )
    return Template.from_stack(stack)


@pytest.fixture
def template(graph) -> Template:
    """Template for 2 public and 1 private subnet."""
    return _synth(graph)


@pytest.fixture
def public_only_template(public_only_graph) -> Template:
    """Template with an empty private tier."""
    return _synth(public_only_graph)


class TestNetworkStack:
    """Test suite for Network Stack."""

    def test_vpc_created(self, template):
        """Test that VPC is created with CIDR and DNS flags."""
        template.has_resource_properties(
            "AWS::EC2::VPC",
            {
                "CidrBlock": "10.0.0.0/16",
                "EnableDnsHostnames": True,
                "EnableDnsSupport": True,
            },
        )

    def test_vpc_has_merged_tags(self, template):
        """Test that the VPC carries network tags plus its Name."""
        template.has_resource_properties(
            "AWS::EC2::VPC",
            {
                "Tags": Match.array_with([
                    {"Key": "Name", "Value": "main-vpc"},
                    {"Key": "Project", "Value": "network-topology"},
                ]),
            },
        )

    def test_resource_counts(self, template):
        """Test one construct per planned entity."""
        template.resource_count_is("AWS::EC2::VPC", 1)
        template.resource_count_is("AWS::EC2::InternetGateway", 1)
        template.resource_count_is("AWS::EC2::VPCGatewayAttachment", 1)
        template.resource_count_is("AWS::EC2::Subnet", 3)
        template.resource_count_is("AWS::EC2::EIP", 1)
        template.resource_count_is("AWS::EC2::NatGateway", 1)
        template.resource_count_is("AWS::EC2::RouteTable", 2)
        template.resource_count_is("AWS::EC2::Route", 2)
        template.resource_count_is("AWS::EC2::SubnetRouteTableAssociation", 3)
        template.resource_count_is("AWS::EC2::SecurityGroup", 2)
        template.resource_count_is("AWS::EC2::NetworkAcl", 2)
        template.resource_count_is("AWS::EC2::SubnetNetworkAclAssociation", 3)

    def test_logical_ids_match_graph(self, template, graph):
        """Test that template resources use the graph's logical ids."""
        resources = template.to_json()["Resources"]

        for subnet in graph.subnets:
            assert subnet.logical_id in resources
        assert "NatGateway" in resources
        assert "PrivateRouteTable" in resources

    def test_subnet_zone_and_cidr(self, template):
        """Test subnet placement from the assigner."""
        template.has_resource_properties(
            "AWS::EC2::Subnet",
            {
                "CidrBlock": "10.0.2.0/24",
                "AvailabilityZone": "z2",
                "MapPublicIpOnLaunch": True,
            },
        )
        template.has_resource_properties(
            "AWS::EC2::Subnet",
            {
                "CidrBlock": "10.0.3.0/24",
                "AvailabilityZone": "z1",
                "MapPublicIpOnLaunch": False,
            },
        )

    def test_nat_gateway_in_first_public_subnet(self, template):
        """Test NAT placement and its Elastic IP."""
        template.has_resource_properties(
            "AWS::EC2::NatGateway",
            {
                "SubnetId": {"Ref": "PublicSubnet0"},
                "AllocationId": {"Fn::GetAtt": ["NatEip", "AllocationId"]},
            },
        )
        template.has_resource_properties("AWS::EC2::EIP", {"Domain": "vpc"})

    def test_default_routes(self, template):
        """Test that each tier routes to its own gateway."""
        template.has_resource_properties(
            "AWS::EC2::Route",
            {
                "RouteTableId": {"Ref": "PublicRouteTable"},
                "DestinationCidrBlock": "0.0.0.0/0",
                "GatewayId": {"Ref": "InternetGateway"},
            },
        )
        template.has_resource_properties(
            "AWS::EC2::Route",
            {
                "RouteTableId": {"Ref": "PrivateRouteTable"},
                "DestinationCidrBlock": "0.0.0.0/0",
                "NatGatewayId": {"Ref": "NatGateway"},
            },
        )

    def test_public_route_waits_for_attachment(self, template):
        """Test the explicit dependency on the gateway attachment."""
        resources = template.to_json()["Resources"]

        assert "InternetGatewayAttachment" in resources["PublicDefaultRoute"]["DependsOn"]
        assert "InternetGatewayAttachment" in resources["NatEip"]["DependsOn"]

    def test_depends_on_mirrors_graph(self, template, graph):
        """Test that only entities with an attachment edge get DependsOn."""
        resources = template.to_json()["Resources"]
        attachment = graph.gateway.attachment_logical_id

        for logical_id, refs in graph.dependencies().items():
            declared = resources[logical_id].get("DependsOn", [])
            assert (attachment in declared) == (attachment in refs)

    def test_private_association(self, template):
        """Test that the private subnet is bound to the private route table."""
        template.has_resource_properties(
            "AWS::EC2::SubnetRouteTableAssociation",
            {
                "SubnetId": {"Ref": "PrivateSubnet0"},
                "RouteTableId": {"Ref": "PrivateRouteTable"},
            },
        )

    def test_public_security_group_rules(self, template):
        """Test HTTP/HTTPS ingress on the public security group."""
        template.has_resource_properties(
            "AWS::EC2::SecurityGroup",
            {
                "GroupName": "main-public-sg",
                "SecurityGroupIngress": Match.array_with([
                    Match.object_like({"IpProtocol": "tcp", "FromPort": 80, "ToPort": 80, "CidrIp": "0.0.0.0/0"}),
                    Match.object_like({"IpProtocol": "tcp", "FromPort": 443, "ToPort": 443, "CidrIp": "0.0.0.0/0"}),
                ]),
                "SecurityGroupEgress": [
                    Match.object_like({"IpProtocol": "-1", "CidrIp": "0.0.0.0/0"}),
                ],
            },
        )

    def test_private_security_group_rules(self, template):
        """Test SSH ingress from inside the network only."""
        template.has_resource_properties(
            "AWS::EC2::SecurityGroup",
            {
                "GroupName": "main-private-sg",
                "SecurityGroupIngress": [
                    Match.object_like({"IpProtocol": "tcp", "FromPort": 22, "ToPort": 22, "CidrIp": "10.0.0.0/16"}),
                ],
            },
        )

    def test_nacl_entries(self, template):
        """Test representative NACL entries."""
        template.has_resource_properties(
            "AWS::EC2::NetworkAclEntry",
            {
                "NetworkAclId": {"Ref": "PublicNetworkAcl"},
                "RuleNumber": 110,
                "Protocol": 6,
                "PortRange": {"From": 443, "To": 443},
                "Egress": False,
                "RuleAction": "allow",
            },
        )
        template.has_resource_properties(
            "AWS::EC2::NetworkAclEntry",
            {
                "NetworkAclId": {"Ref": "PrivateNetworkAcl"},
                "RuleNumber": 100,
                "Protocol": -1,
                "Egress": True,
                "CidrBlock": "0.0.0.0/0",
            },
        )

    def test_outputs_exist(self, template):
        """Test that every named output is exported."""
        outputs = template.find_outputs("*")

        for name in (
            "VpcId",
            "PublicSubnetIds",
            "PrivateSubnetIds",
            "PublicSecurityGroupId",
            "PrivateSecurityGroupId",
            "PublicNetworkAclId",
            "PrivateNetworkAclId",
        ):
            assert name in outputs

    def test_output_exports(self, template):
        """Test that outputs have prefixed export names."""
        outputs = template.find_outputs("*")

        assert outputs["VpcId"]["Export"]["Name"] == "main-vpc-id"
        assert outputs["PublicSubnetIds"]["Export"]["Name"] == "main-public-subnet-ids"
        assert outputs["PrivateSubnetIds"]["Export"]["Name"] == "main-private-subnet-ids"
        assert outputs["PublicSecurityGroupId"]["Export"]["Name"] == "main-public-sg-id"
        assert outputs["PrivateNetworkAclId"]["Export"]["Name"] == "main-private-nacl-id"


class TestNetworkStackWithoutPrivateTier:
    """Test suite for a graph with no private subnets."""

    def test_no_nat_path(self, public_only_template):
        """Test that no EIP or NAT gateway is rendered."""
        public_only_template.resource_count_is("AWS::EC2::EIP", 0)
        public_only_template.resource_count_is("AWS::EC2::NatGateway", 0)

    def test_single_route_table(self, public_only_template):
        """Test that only the public route table exists."""
        public_only_template.resource_count_is("AWS::EC2::RouteTable", 1)
        public_only_template.resource_count_is("AWS::EC2::Route", 1)
        public_only_template.resource_count_is("AWS::EC2::SubnetRouteTableAssociation", 2)

    def test_security_artifacts_still_present(self, public_only_template):
        """Test that both tiers keep their security groups and NACLs."""
        public_only_template.resource_count_is("AWS::EC2::SecurityGroup", 2)
        public_only_template.resource_count_is("AWS::EC2::NetworkAcl", 2)

    def test_private_subnet_output_omitted(self, public_only_template):
        """Test that the empty private subnet list is not exported."""
        outputs = public_only_template.find_outputs("*")

        assert "PrivateSubnetIds" not in outputs
        assert "PublicSubnetIds" in outputs
        assert "PrivateSecurityGroupId" in outputs
