import logging
import os

import numpy as np
from PIL import Image


def frame_stats(screenshot_path: str) -> dict:
    """
    Quick sanity check on a screencap.

    `screencap` returns an all-black frame for FLAG_SECURE windows and when the
    screen is off, which makes a "banner missing" failure look real when it
    isn't. We flag those frames so the report reader knows not to trust them.
    """
    img = Image.open(screenshot_path).convert("RGB")
    arr = np.asarray(img, dtype=np.float32)

    avg = arr.mean(axis=(0, 1))  # [R,G,B]
    luma = float(0.299 * avg[0] + 0.587 * avg[1] + 0.114 * avg[2])
    spread = float(arr.std())

    blank = luma < 8.0 and spread < 4.0
    return {
        "blank": blank,
        "avg_rgb": [float(avg[0]), float(avg[1]), float(avg[2])],
        "size": [img.width, img.height],
    }


def capture(device, run_dir: str, name: str) -> dict:
    """Screenshot into run_dir and attach frame stats. Never raises."""
    path = os.path.join(run_dir, f"{name}.png")
    try:
        device.screenshot(path)
    except Exception as e:
        logging.debug("[ARTIFACT] screenshot failed for %s: %s", name, e)
        return {"path": None, "error": str(e)}

    try:
        stats = frame_stats(path)
    except OSError as e:
        return {"path": path, "error": f"unreadable screenshot: {e}"}

    if stats["blank"]:
        logging.info(f"[ARTIFACT] {name}: blank frame (secure window or screen off?)")
    return {"path": path, **stats}
