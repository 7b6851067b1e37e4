"""
Android-specific UI helpers shared by the host driver.

These routines stay centralized so the uiautomator parsing and the
somewhat-finicky bounds math live in one place.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from typing import Optional, Tuple

from adb.device import AndroidDevice

__all__ = [
    "_safe_parse_xml",
    "_parse_bounds",
    "tap_bounds_center",
    "find_node_by_res_id",
    "find_node_by_text",
    "find_permission_dialog_text",
    "is_node_visible",
]

# Both the AOSP and the Google-signed permission controller, plus the old
# packageinstaller that hosted the dialog before Android 10.
PERMISSION_DIALOG_PACKAGES = (
    "com.android.permissioncontroller",
    "com.google.android.permissioncontroller",
    "com.android.packageinstaller",
)


def _safe_parse_xml(xml_text: str) -> Optional[ET.Element]:
    """Parse a uiautomator dump; returns None for blank dumps or parse errors."""
    if not xml_text:
        return None
    try:
        return ET.fromstring(xml_text)
    except ET.ParseError:
        return None


def _parse_bounds(bounds: str) -> Optional[Tuple[int, int, int, int]]:
    """Convert Android bounds string into (left, top, right, bottom)."""
    if not bounds:
        return None
    nums = re.findall(r"-?\d+", bounds)
    if len(nums) != 4:
        return None
    left, top, right, bottom = map(int, nums)
    return left, top, right, bottom


def tap_bounds_center(device: AndroidDevice, bounds: str) -> bool:
    """Tap the center of the supplied bounds rectangle."""
    rect = _parse_bounds(bounds)
    if not rect:
        return False
    left, top, right, bottom = rect
    x = (left + right) // 2
    y = (top + bottom) // 2
    device.tap(x, y)
    return True


def is_node_visible(node: ET.Element) -> bool:
    # uiautomator only dumps nodes that are on screen, but collapsed views
    # still show up with an empty rectangle.
    if node.attrib.get("visible-to-user") == "false":
        return False
    rect = _parse_bounds(node.attrib.get("bounds") or "")
    if not rect:
        return False
    left, top, right, bottom = rect
    return right > left and bottom > top


def find_node_by_res_id(root: ET.Element, res_id: str) -> Optional[ET.Element]:
    if root is None or not res_id:
        return None
    for node in root.iter("node"):
        rid = node.attrib.get("resource-id") or ""
        if rid == res_id:
            return node
    return None


def find_node_by_text(root: ET.Element, label: str) -> Optional[ET.Element]:
    """Exact label match on text, then content-desc. Clickable nodes win."""
    if root is None or not label:
        return None
    want = label.strip()
    fallback = None
    for node in root.iter("node"):
        text = (node.attrib.get("text") or "").strip()
        desc = (node.attrib.get("content-desc") or "").strip()
        if want not in (text, desc):
            continue
        if node.attrib.get("clickable") == "true":
            return node
        if fallback is None:
            fallback = node
    return fallback


def find_permission_dialog_text(root: ET.Element) -> Optional[str]:
    """Return the message of the runtime permission dialog, if one is up."""
    if root is None:
        return None
    for node in root.iter("node"):
        pkg = node.attrib.get("package") or ""
        rid = node.attrib.get("resource-id") or ""
        if pkg in PERMISSION_DIALOG_PACKAGES and rid.endswith(":id/permission_message"):
            text = (node.attrib.get("text") or "").strip()
            if text:
                return text
    return None
