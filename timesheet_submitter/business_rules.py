"""
Business rules for optional timesheet fields.

Some projects have no tools, and some tools take no charge code. The grid
normalizes these upstream, but the form filler re-checks them before touching
any form control.
"""

from typing import Optional


# Projects that do not require tools
PROJECTS_WITHOUT_TOOLS = frozenset([
    "ERT",
    "PTO/RTO",
    "SWFL-CHEM/GAS",
    "Training",
])

# Tools that do not require charge codes
TOOLS_WITHOUT_CHARGES = frozenset([
    "Internal Meeting",
    "DECA Meeting",
    "Logistics",
    "Meeting",
    "Non Tool Related",
    "Admin",
    "Training",
    "N/A",
])

# Projects whose form shows a dedicated tool control
PROJECT_TO_TOOL_LABEL = {
    "OSC-BBB": "BBB Tool",
    "FL-Carver Techs": "Carver Tool",
    "FL-Carver Tools": "Carver Tool",
    "SWFL-EQUIP": "SWFL Tool",
}


def project_needs_tool(project: Optional[str]) -> bool:
    """Return True if the project requires a tool selection."""
    return bool(project) and project not in PROJECTS_WITHOUT_TOOLS


def tool_needs_charge_code(tool: Optional[str]) -> bool:
    """Return True if the tool requires a charge code."""
    return bool(tool) and tool not in TOOLS_WITHOUT_CHARGES


def applicable_tool(project: Optional[str], tool: Optional[str]) -> Optional[str]:
    """
    Get the tool value that should be sent to the form.

    Returns:
        The tool, or None if the project takes no tool or none was given
    """
    if not tool or not project_needs_tool(project):
        return None
    return tool


def applicable_charge_code(
    project: Optional[str],
    tool: Optional[str],
    charge_code: Optional[str]
) -> Optional[str]:
    """
    Get the charge code that should be sent to the form.

    A charge code only applies when an applicable tool requires one.

    Returns:
        The charge code, or None if it does not apply
    """
    effective_tool = applicable_tool(project, tool)
    if not charge_code or not tool_needs_charge_code(effective_tool):
        return None
    return charge_code
