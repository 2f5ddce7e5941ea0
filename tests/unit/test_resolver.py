"""Unit tests for wiring resolution."""
import pytest

from network_topology_cdk.exceptions import DependencyError
from network_topology_cdk.topology.assigner import assign_subnets
from network_topology_cdk.topology.planner import plan_nat
from network_topology_cdk.topology.resolver import resolve_wiring
from network_topology_cdk.topology.models import Tier


@pytest.fixture
def assigned(network_spec, public_request, private_request):
    """Assigned tiers and NAT plan for 2 public / 1 private."""
    public = assign_subnets(network_spec, public_request)
    private = assign_subnets(network_spec, private_request)
    return public, private, plan_nat(network_spec, public, private)


@pytest.mark.unit
class TestResolveWiring:
    """Test suite for resolve_wiring."""

    def test_public_route_targets_gateway(self, network_spec, assigned):
        """Test that the public default route goes to the internet gateway."""
        public, private, nat = assigned
        graph = resolve_wiring(network_spec, public, private, nat, "us-east-1")

        route = graph.public_route_table.route
        assert route.destination_cidr == "0.0.0.0/0"
        assert route.target_kind == "gateway"
        assert route.target_ref == graph.gateway.logical_id

    def test_private_route_targets_nat(self, network_spec, assigned):
        """Test that the private default route goes to the NAT gateway."""
        public, private, nat = assigned
        graph = resolve_wiring(network_spec, public, private, nat, "us-east-1")

        route = graph.private_route_table.route
        assert route.target_kind == "nat"
        assert route.target_ref == nat.logical_id

    def test_private_subnets_without_nat_fail(self, network_spec, assigned):
        """Test that private routing without a NAT path is a dependency error."""
        public, private, _ = assigned

        with pytest.raises(DependencyError) as exc_info:
            resolve_wiring(network_spec, public, private, None, "us-east-1")

        assert exc_info.value.context["entity"] == "PrivateRouteTable"

    def test_nat_outside_public_tier_fails(self, network_spec, assigned):
        """Test that a NAT plan pointing at an unknown subnet is rejected."""
        public, private, nat = assigned
        dangling = nat.model_copy(update={"subnet_ref": "PublicSubnet9"})

        with pytest.raises(DependencyError) as exc_info:
            resolve_wiring(network_spec, public, private, dangling, "us-east-1")

        assert exc_info.value.context["subnet_ref"] == "PublicSubnet9"

    def test_no_nat_means_no_private_route_table(self, network_spec, assigned):
        """Test that the private route table exists only with a NAT path."""
        public, _, _ = assigned
        graph = resolve_wiring(network_spec, public, (), None, "us-east-1")

        assert graph.private_route_table is None
        assert graph.route_tables == (graph.public_route_table,)

    def test_every_subnet_has_one_tier_matched_association(self, network_spec, assigned):
        """Test association completeness and tier matching."""
        public, private, nat = assigned
        graph = resolve_wiring(network_spec, public, private, nat, "us-east-1")

        tables = {table.logical_id: table for table in graph.route_tables}
        for subnet in graph.subnets:
            matches = [a for a in graph.associations if a.subnet_ref == subnet.logical_id]
            assert len(matches) == 1
            assert tables[matches[0].route_table_ref].tier is subnet.tier
            assert matches[0].subnet_index == subnet.index

    def test_security_groups_are_static(self, network_spec, assigned):
        """Test the fixed rule sets of both security groups."""
        public, private, nat = assigned
        graph = resolve_wiring(network_spec, public, private, nat, "us-east-1")

        public_sg = graph.security_group(Tier.PUBLIC)
        private_sg = graph.security_group(Tier.PRIVATE)

        assert [(r.protocol, r.from_port, r.cidr) for r in public_sg.ingress] == [
            ("tcp", 80, "0.0.0.0/0"),
            ("tcp", 443, "0.0.0.0/0"),
        ]
        assert [(r.protocol, r.from_port, r.cidr) for r in private_sg.ingress] == [
            ("tcp", 22, "10.0.0.0/16"),
        ]
        for sg in (public_sg, private_sg):
            assert [(r.protocol, r.cidr) for r in sg.egress] == [("-1", "0.0.0.0/0")]
            assert sg.network_ref == "Vpc"

    def test_nacls_allow_expected_ports(self, network_spec, assigned):
        """Test NACL inbound ports and all-traffic egress."""
        public, private, nat = assigned
        graph = resolve_wiring(network_spec, public, private, nat, "us-east-1")

        public_nacl = graph.nacl(Tier.PUBLIC)
        private_nacl = graph.nacl(Tier.PRIVATE)

        public_inbound = {(e.from_port, e.cidr) for e in public_nacl.entries if not e.egress}
        assert (80, "0.0.0.0/0") in public_inbound
        assert (443, "0.0.0.0/0") in public_inbound

        private_inbound = {(e.from_port, e.cidr) for e in private_nacl.entries if not e.egress}
        assert (22, "10.0.0.0/16") in private_inbound

        for nacl in (public_nacl, private_nacl):
            egress = [e for e in nacl.entries if e.egress]
            assert [(e.protocol, e.cidr) for e in egress] == [(-1, "0.0.0.0/0")]

    def test_nacl_rule_numbers_unique_per_direction(self, network_spec, assigned):
        """Test that no NACL reuses a rule number in one direction."""
        public, private, nat = assigned
        graph = resolve_wiring(network_spec, public, private, nat, "us-east-1")

        for nacl in graph.nacls:
            keys = [(e.egress, e.rule_number) for e in nacl.entries]
            assert len(keys) == len(set(keys))

    def test_nacl_associations_follow_tier(self, network_spec, assigned):
        """Test that every subnet is bound to its tier's NACL."""
        public, private, nat = assigned
        graph = resolve_wiring(network_spec, public, private, nat, "us-east-1")

        nacl_tiers = {nacl.logical_id: nacl.tier for nacl in graph.nacls}
        assert len(graph.nacl_associations) == len(graph.subnets)
        for association in graph.nacl_associations:
            assert nacl_tiers[association.nacl_ref] is association.tier

    def test_names_use_prefix(self, network_spec, assigned):
        """Test deterministic names of the network-level resources."""
        public, private, nat = assigned
        graph = resolve_wiring(network_spec, public, private, nat, "us-east-1")

        assert graph.network.name == "main-vpc"
        assert graph.gateway.name == "main-igw"
        assert graph.public_route_table.name == "main-public-rt"
        assert graph.private_route_table.name == "main-private-rt"
        assert graph.security_group(Tier.PUBLIC).name == "main-public-sg"
        assert graph.nacl(Tier.PRIVATE).name == "main-private-nacl"
        assert graph.network.tags["Name"] == "main-vpc"
        assert graph.network.tags["Project"] == "network-topology"
