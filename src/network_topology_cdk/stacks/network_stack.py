"""Network Stack.

Renders a compiled ResourceGraph into CloudFormation L1 constructs. Every
construct id is the logical id of the planned entity, so template resources
can be traced back to the graph. The stack makes no decisions of its own:
counts, conditionals and references all come from the graph.
"""
from typing import Mapping

from aws_cdk import CfnOutput, CfnResource, CfnTag, Stack
from aws_cdk import aws_ec2 as ec2
from constructs import Construct

from ..topology.models import (
    NaclPlan,
    ResourceGraph,
    RouteTablePlan,
    SecurityGroupPlan,
    Tier,
)


def _cfn_tags(tags: Mapping[str, str]) -> list[CfnTag]:
    return [CfnTag(key=key, value=value) for key, value in sorted(tags.items())]


class NetworkStack(Stack):
    """VPC, subnets, gateways, routing and security artifacts for one graph."""

    def __init__(
        self,
        scope: Construct,
        construct_id: str,
        graph: ResourceGraph,
        **kwargs,
    ) -> None:
        """Initialize Network Stack.

        Args:
            scope: CDK app or parent stack
            construct_id: Unique identifier for this stack
            graph: Compiled resource graph to render
            **kwargs: Additional stack properties
        """
        super().__init__(scope, construct_id, **kwargs)

        self.graph = graph
        self._graph_edges = graph.dependencies()
        self.vpc = self._create_vpc()
        self.internet_gateway, self.gateway_attachment = self._create_internet_gateway()
        self.subnets = self._create_subnets()
        self.nat_gateway = self._create_nat_path()
        self.route_tables = {
            table.tier: self._create_route_table(table) for table in graph.route_tables
        }
        self._associate_route_tables()
        self.security_groups = {
            sg.tier: self._create_security_group(sg) for sg in graph.security_groups
        }
        self.nacls = {nacl.tier: self._create_nacl(nacl) for nacl in graph.nacls}
        self._associate_nacls()
        self._create_outputs()

    def _wait_for_attachment(self, resource: CfnResource, logical_id: str) -> None:
        """Declare the graph's edge on the gateway attachment as DependsOn."""
        if self.graph.gateway.attachment_logical_id in self._graph_edges[logical_id]:
            resource.add_dependency(self.gateway_attachment)

    def _create_vpc(self) -> ec2.CfnVPC:
        network = self.graph.network
        return ec2.CfnVPC(
            self,
            network.logical_id,
            cidr_block=network.cidr_block,
            enable_dns_support=network.dns_support,
            enable_dns_hostnames=network.dns_hostnames,
            tags=_cfn_tags(network.tags),
        )

    def _create_internet_gateway(self) -> tuple[ec2.CfnInternetGateway, ec2.CfnVPCGatewayAttachment]:
        gateway = self.graph.gateway
        igw = ec2.CfnInternetGateway(
            self,
            gateway.logical_id,
            tags=_cfn_tags(gateway.tags),
        )
        attachment = ec2.CfnVPCGatewayAttachment(
            self,
            gateway.attachment_logical_id,
            vpc_id=self.vpc.ref,
            internet_gateway_id=igw.ref,
        )
        return igw, attachment

    def _create_subnets(self) -> dict[str, ec2.CfnSubnet]:
        subnets = {}
        for plan in self.graph.subnets:
            subnets[plan.logical_id] = ec2.CfnSubnet(
                self,
                plan.logical_id,
                vpc_id=self.vpc.ref,
                cidr_block=plan.cidr,
                availability_zone=plan.zone,
                map_public_ip_on_launch=plan.map_public_ip_on_launch,
                tags=_cfn_tags(plan.tags),
            )
        return subnets

    def _create_nat_path(self) -> ec2.CfnNatGateway | None:
        nat = self.graph.nat
        if nat is None:
            return None

        eip = ec2.CfnEIP(
            self,
            nat.eip_logical_id,
            domain="vpc",
            tags=_cfn_tags(nat.eip_tags),
        )
        self._wait_for_attachment(eip, nat.eip_logical_id)

        return ec2.CfnNatGateway(
            self,
            nat.logical_id,
            allocation_id=eip.attr_allocation_id,
            subnet_id=self.subnets[nat.subnet_ref].ref,
            tags=_cfn_tags(nat.tags),
        )

    def _create_route_table(self, plan: RouteTablePlan) -> ec2.CfnRouteTable:
        route_table = ec2.CfnRouteTable(
            self,
            plan.logical_id,
            vpc_id=self.vpc.ref,
            tags=_cfn_tags(plan.tags),
        )

        route = plan.route
        if route.target_kind == "gateway":
            default_route = ec2.CfnRoute(
                self,
                route.logical_id,
                route_table_id=route_table.ref,
                destination_cidr_block=route.destination_cidr,
                gateway_id=self.internet_gateway.ref,
            )
        else:
            default_route = ec2.CfnRoute(
                self,
                route.logical_id,
                route_table_id=route_table.ref,
                destination_cidr_block=route.destination_cidr,
                nat_gateway_id=self.nat_gateway.ref,
            )
        self._wait_for_attachment(default_route, route.logical_id)
        return route_table

    def _associate_route_tables(self) -> None:
        tables_by_id = {table.logical_id: self.route_tables[table.tier] for table in self.graph.route_tables}
        for association in self.graph.associations:
            ec2.CfnSubnetRouteTableAssociation(
                self,
                association.logical_id,
                subnet_id=self.subnets[association.subnet_ref].ref,
                route_table_id=tables_by_id[association.route_table_ref].ref,
            )

    def _create_security_group(self, plan: SecurityGroupPlan) -> ec2.CfnSecurityGroup:
        return ec2.CfnSecurityGroup(
            self,
            plan.logical_id,
            group_name=plan.name,
            group_description=plan.description,
            vpc_id=self.vpc.ref,
            security_group_ingress=[
                ec2.CfnSecurityGroup.IngressProperty(
                    ip_protocol=rule.protocol,
                    cidr_ip=rule.cidr,
                    from_port=rule.from_port,
                    to_port=rule.to_port,
                    description=rule.description,
                )
                for rule in plan.ingress
            ],
            security_group_egress=[
                ec2.CfnSecurityGroup.EgressProperty(
                    ip_protocol=rule.protocol,
                    cidr_ip=rule.cidr,
                    from_port=rule.from_port,
                    to_port=rule.to_port,
                    description=rule.description,
                )
                for rule in plan.egress
            ],
            tags=_cfn_tags(plan.tags),
        )

    def _create_nacl(self, plan: NaclPlan) -> ec2.CfnNetworkAcl:
        nacl = ec2.CfnNetworkAcl(
            self,
            plan.logical_id,
            vpc_id=self.vpc.ref,
            tags=_cfn_tags(plan.tags),
        )
        for entry in plan.entries:
            port_range = None
            if entry.from_port is not None:
                port_range = ec2.CfnNetworkAclEntry.PortRangeProperty(
                    from_=entry.from_port,
                    to=entry.to_port,
                )
            ec2.CfnNetworkAclEntry(
                self,
                plan.entry_logical_id(entry),
                network_acl_id=nacl.ref,
                rule_number=entry.rule_number,
                protocol=entry.protocol,
                rule_action=entry.action,
                egress=entry.egress,
                cidr_block=entry.cidr,
                port_range=port_range,
            )
        return nacl

    def _associate_nacls(self) -> None:
        nacls_by_id = {nacl.logical_id: self.nacls[nacl.tier] for nacl in self.graph.nacls}
        for association in self.graph.nacl_associations:
            ec2.CfnSubnetNetworkAclAssociation(
                self,
                association.logical_id,
                subnet_id=self.subnets[association.subnet_ref].ref,
                network_acl_id=nacls_by_id[association.nacl_ref].ref,
            )

    def _create_outputs(self) -> None:
        outputs = self.graph.outputs()
        prefix = self.graph.network.prefix

        CfnOutput(
            self,
            "VpcId",
            value=self.vpc.ref,
            description="VPC ID",
            export_name=f"{prefix}-vpc-id",
        )

        # CloudFormation rejects empty output values
        for tier, subnet_ids in (
            (Tier.PUBLIC, outputs.public_subnet_ids),
            (Tier.PRIVATE, outputs.private_subnet_ids),
        ):
            if not subnet_ids:
                continue
            CfnOutput(
                self,
                f"{tier.label}SubnetIds",
                value=",".join(self.subnets[logical_id].ref for logical_id in subnet_ids),
                description=f"Comma-separated list of {tier.value} subnet IDs in index order",
                export_name=f"{prefix}-{tier.value}-subnet-ids",
            )

        for tier in Tier:
            CfnOutput(
                self,
                f"{tier.label}SecurityGroupId",
                value=self.security_groups[tier].attr_group_id,
                description=f"Security group ID of the {tier.value} tier",
                export_name=f"{prefix}-{tier.value}-sg-id",
            )
            CfnOutput(
                self,
                f"{tier.label}NetworkAclId",
                value=self.nacls[tier].ref,
                description=f"Network ACL ID of the {tier.value} tier",
                export_name=f"{prefix}-{tier.value}-nacl-id",
            )
