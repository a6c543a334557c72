"""Helpers for working out a cluster's DNS service address and domain."""

from __future__ import annotations

import ipaddress
import logging
import socket
from typing import Any, Callable, Protocol

from declpattern.schema import NotFoundError

_log = logging.getLogger(__name__)

DNS_DOMAIN = "cluster.local"
DNS_IP = "10.96.0.10"

_KUBERNETES_SERVICE = "kubernetes.default.svc"


class ServiceClient(Protocol):
    def get_service(self, namespace: str, name: str) -> Any:
        """Return the Service as a mapping, raising NotFoundError if it is absent."""


def find_dns_cluster_ip(client: ServiceClient) -> str:
    """Return the cluster IP for the DNS service.

    This is the tenth address of the service subnet, whose first address belongs to the
    ``kubernetes`` Service in the ``default`` namespace. If that Service does not exist,
    the conventional default is returned.
    """
    try:
        service = client.get_service("default", "kubernetes")
    except NotFoundError:
        return DNS_IP

    cluster_ip = (service.get("spec") or {}).get("clusterIP", "")
    ip = _parse_ip(cluster_ip)
    if ip is None:
        raise ValueError(f'cannot parse kubernetes ClusterIP "{cluster_ip}"')

    # Adding 9 to the last byte moves from the first to the tenth address.
    packed = bytearray(ip.packed)
    packed[-1] = (packed[-1] + 9) % 256
    result = str(type(ip)(bytes(packed)))
    _log.info('determined ClusterIP for cluster should be "%s"', result)
    return result


def _parse_ip(text: Any) -> ipaddress.IPv4Address | ipaddress.IPv6Address | None:
    if not isinstance(text, str) or not text or "%" in text:
        return None
    try:
        ip = ipaddress.ip_address(text)
    except ValueError:
        return None
    if isinstance(ip, ipaddress.IPv6Address) and ip.ipv4_mapped is not None:
        return ip.ipv4_mapped
    return ip


def _lookup_cname(name: str) -> str:
    return socket.gethostbyname_ex(name)[0]


def get_dns_domain(resolver: Callable[[str], str] | None = None) -> str:
    """Return the cluster's DNS domain, found from the canonical name of the
    ``kubernetes.default.svc`` Service; falls back to the conventional default."""
    lookup = resolver if resolver is not None else _lookup_cname
    try:
        cname = lookup(_KUBERNETES_SERVICE)
    except (OSError, LookupError):
        _log.info(
            'could not determine the domain, the DNS Domain for the cluster will default to "%s"',
            DNS_DOMAIN,
        )
        return DNS_DOMAIN

    domain = cname.removeprefix(_KUBERNETES_SERVICE).removeprefix(".").removesuffix(".")
    _log.info('determined DNS Domain for DNS should be "%s"', domain)
    return domain