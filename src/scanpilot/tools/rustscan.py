import xml.etree.ElementTree as ET
from typing import Dict, List, Any, Optional

from scanpilot.logger import setup_logger
from scanpilot.runner import CommandRunner
from scanpilot.tools.system_command import SystemCommandTool

logger = setup_logger(__name__)

DEFAULT_PORT_RANGE = "0-10000"
DEFAULT_REPORT_PATH = "nmap_report.xml"


def build_scan_args(host: str, ports: str = DEFAULT_PORT_RANGE, report_path: str = DEFAULT_REPORT_PATH) -> List[str]:
    """
    Rustscan finds open ports, then hands them to nmap after `--` for
    service/script detection with an XML report written to report_path.
    """
    return [
        "-a", host,
        "-r", ports,
        "--", "-sVCT", "-oX", report_path,
    ]


def create_scan_tool(
    binary: str = "rustscan",
    runner: CommandRunner = None,
    timeout: Optional[float] = None,
) -> SystemCommandTool:
    return SystemCommandTool(
        "Rustscan",
        "Network scanning tool",
        binary or "rustscan",
        runner=runner,
        timeout=timeout,
    )


def parse_report(xml_content: str) -> Dict[str, Any]:
    """
    Parses an nmap XML report into {"hosts": [{ip, hostnames, ports}]}.
    Only open ports are kept. Returns {"error": ...} when the XML is malformed.
    """
    try:
        root = ET.fromstring(xml_content)
    except ET.ParseError as e:
        logger.warning(f"Failed to parse nmap XML: {e}")
        return {"error": "XML Parse Error", "details": str(e)}

    scan_result: Dict[str, Any] = {"hosts": []}
    for host in root.findall("host"):
        host_data: Dict[str, Any] = {"ip": "", "hostnames": [], "ports": []}

        address = host.find("address")
        if address is not None:
            host_data["ip"] = address.get("addr", "")

        hostnames = host.find("hostnames")
        if hostnames is not None:
            for hn in hostnames.findall("hostname"):
                if hn.get("name"):
                    host_data["hostnames"].append(hn.get("name"))

        ports = host.find("ports")
        if ports is not None:
            for port in ports.findall("port"):
                state_el = port.find("state")
                state = state_el.get("state") if state_el is not None else "unknown"
                if state != "open":
                    continue
                try:
                    port_num = int(port.get("portid", ""))
                except ValueError:
                    logger.debug(f"Skipping non-numeric port entry: {port.get('portid')}")
                    continue
                service_el = port.find("service")
                host_data["ports"].append({
                    "port": port_num,
                    "protocol": port.get("protocol", ""),
                    "state": state,
                    "service": service_el.get("name", "unknown") if service_el is not None else "unknown",
                    "product": service_el.get("product", "") if service_el is not None else "",
                    "version": service_el.get("version", "") if service_el is not None else "",
                })

        scan_result["hosts"].append(host_data)
    return scan_result


def format_open_ports(parsed: Dict[str, Any]) -> str:
    """One line per open port, for the log detail pane."""
    if not isinstance(parsed, dict) or "hosts" not in parsed:
        return ""
    lines = []
    for host in parsed["hosts"]:
        ip = host.get("ip") or "unknown"
        if not host.get("ports"):
            lines.append(f"{ip}: no open ports")
            continue
        for p in host["ports"]:
            details = " ".join(filter(None, [p.get("product", ""), p.get("version", "")])).strip()
            line = f"{ip} {p['port']}/{p.get('protocol', '')} {p.get('service', 'unknown')}"
            lines.append(f"{line} ({details})" if details else line)
    return "\n".join(lines)
