"""Validation of the internal cluster configuration."""

from __future__ import annotations

import ipaddress
import json
import re
from collections import Counter
from typing import Optional, Union

from kindkit import errors as kerrors
from kindkit.config import Cluster, ClusterIPFamily, Node, NodeRole, ProxyMode

# similar to valid container names, relaxed since the name gets a prefix and suffix
_VALID_NAME_PATTERN = r"^[a-z0-9_.-]+$"
_VALID_NAME_RE = re.compile(r"[a-z0-9_.-]+")

_IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]

_DUAL_STACK_MESSAGE = (
    "expected one (IPv4 or IPv6) CIDR or two CIDRs from each family for dual-stack networking"
)


def _quote(value: object) -> str:
    return json.dumps(str(value))


def validate_cluster(cluster: Cluster) -> None:
    """Raise an error listing every problem with cluster; return None if it is valid."""
    errs: list[BaseException] = []

    if not _VALID_NAME_RE.fullmatch(cluster.name):
        errs.append(
            kerrors.errorf(
                "'%s' is not a valid cluster name, cluster names must match `%s`",
                cluster.name,
                _VALID_NAME_PATTERN,
            )
        )

    net = cluster.networking
    # a zero port means one is picked at runtime
    if net.api_server_port != 0:
        port_err = _port_error(net.api_server_port)
        if port_err is not None:
            errs.append(kerrors.wrapf(port_err, "invalid apiServerPort"))  # type: ignore[arg-type]

    is_dual_stack = net.ip_family == ClusterIPFamily.DUAL_STACK
    pod_err = _subnets_error(net.pod_subnet, is_dual_stack)
    if pod_err is not None:
        errs.append(kerrors.errorf("invalid pod subnet %s", pod_err))
    service_err = _subnets_error(net.service_subnet, is_dual_stack)
    if service_err is not None:
        errs.append(kerrors.errorf("invalid service subnet %s", service_err))

    if net.kube_proxy_mode not in (ProxyMode.IPTABLES, ProxyMode.IPVS, ProxyMode.NONE):
        errs.append(kerrors.errorf("invalid kubeProxyMode: %s", str(net.kube_proxy_mode)))

    roles: Counter[str] = Counter()
    for index, node in enumerate(cluster.nodes):
        node_err = _node_error(node)
        if node_err is not None:
            errs.append(kerrors.errorf("invalid configuration for node %d: %s", index, node_err))
        roles[str(node.role)] += 1

    if roles[NodeRole.CONTROL_PLANE.value] < 1:
        errs.append(kerrors.errorf("must have at least one %s node", NodeRole.CONTROL_PLANE.value))

    if errs:
        raise kerrors.new_aggregate(errs)  # type: ignore[misc]


def validate_node(node: Node) -> None:
    """Raise an error listing every problem with node; return None if it is valid."""
    err = _node_error(node)
    if err is not None:
        raise err


def _node_error(node: Node) -> Optional[BaseException]:
    errs: list[BaseException] = []

    if node.role not in (NodeRole.CONTROL_PLANE, NodeRole.WORKER):
        errs.append(kerrors.errorf("%s is not a valid node role", _quote(node.role)))

    if not node.image:
        errs.append(kerrors.new("image is a required field"))

    for mapping in node.extra_port_mappings:
        host_err = _port_error(mapping.host_port)
        if host_err is not None:
            errs.append(kerrors.wrapf(host_err, "invalid hostPort"))  # type: ignore[arg-type]
        container_err = _port_error(mapping.container_port)
        if container_err is not None:
            errs.append(kerrors.wrapf(container_err, "invalid containerPort"))  # type: ignore[arg-type]

    return kerrors.new_aggregate(errs) if errs else None


def validate_port(port: int) -> None:
    """Raise an error if port is out of range; -1 is allowed and means backend-chosen."""
    err = _port_error(port)
    if err is not None:
        raise err


def _port_error(port: int) -> Optional[BaseException]:
    if port < -1 or port > 65535:
        return kerrors.errorf("invalid port number: %d", port)
    return None


def _parse_cidr(text: str) -> _IPNetwork:
    address, sep, prefix = text.partition("/")
    if not sep or not prefix.isdigit():
        raise ValueError(f"invalid CIDR address: {text}")
    try:
        return ipaddress.ip_network(f"{address}/{int(prefix)}", strict=False)
    except ValueError:
        raise ValueError(f"invalid CIDR address: {text}") from None


def _subnets_error(subnets_text: str, dual_stack: bool) -> Optional[BaseException]:
    subnets: list[_IPNetwork] = []
    for cidr_text in subnets_text.split(","):
        try:
            subnets.append(_parse_cidr(cidr_text))
        except ValueError as exc:
            return kerrors.new_without_stack(
                f"failed to parse cidr value:{_quote(cidr_text)} with error: {exc}"
            )

    errs: list[BaseException] = []
    if dual_stack and len(subnets) > 2:
        errs.append(kerrors.new(_DUAL_STACK_MESSAGE))
    elif dual_stack and len(subnets) == 2:
        if not _is_dual_stack(subnets):
            errs.append(kerrors.new(_DUAL_STACK_MESSAGE))
    elif not dual_stack and len(subnets) > 1:
        errs.append(kerrors.new("only one CIDR allowed for single-stack networking"))

    return kerrors.new_aggregate(errs) if errs else None


def _is_v6(network: _IPNetwork) -> bool:
    if network.version != 6:
        return False
    # IPv4-mapped addresses count as IPv4
    return network.network_address.ipv4_mapped is None  # type: ignore[union-attr]


def _is_dual_stack(subnets: list[_IPNetwork]) -> bool:
    """Return True if there is at least one subnet of each IP family."""
    v6_found = any(_is_v6(net) for net in subnets)
    v4_found = any(not _is_v6(net) for net in subnets)
    return v4_found and v6_found