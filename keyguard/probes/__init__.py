"""
Active security probes for the KeyGuard scanner.

Each probe runs one heuristic check against the live target and returns
typed VulnerabilityTest results.
"""

from keyguard.probes.base import BaseProbe, ProbeType
from keyguard.probes.cors import CORSProbe
from keyguard.probes.debug_endpoints import DebugEndpointsProbe
from keyguard.probes.headers import SecurityHeadersProbe
from keyguard.probes.info_disclosure import InfoDisclosureProbe
from keyguard.probes.misconfiguration import MisconfigurationProbe
from keyguard.probes.sensitive_paths import SensitivePathsProbe
from keyguard.probes.tls import TLSProbe

PROBE_CLASSES: dict[ProbeType, type[BaseProbe]] = {
    ProbeType.SECURITY_HEADERS: SecurityHeadersProbe,
    ProbeType.INFO_DISCLOSURE: InfoDisclosureProbe,
    ProbeType.SENSITIVE_PATHS: SensitivePathsProbe,
    ProbeType.DEBUG_ENDPOINTS: DebugEndpointsProbe,
    ProbeType.CORS: CORSProbe,
    ProbeType.TLS: TLSProbe,
    ProbeType.MISCONFIGURATION: MisconfigurationProbe,
}

__all__ = [
    "BaseProbe",
    "ProbeType",
    "PROBE_CLASSES",
    "SecurityHeadersProbe",
    "InfoDisclosureProbe",
    "SensitivePathsProbe",
    "DebugEndpointsProbe",
    "CORSProbe",
    "TLSProbe",
    "MisconfigurationProbe",
]
