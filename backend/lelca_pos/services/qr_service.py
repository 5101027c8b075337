# Overview: QR payloads for inventory items and the optional image-encoding capability.

from __future__ import annotations

import base64
import io
import json
import logging
from typing import Optional, Protocol

import qrcode
from flask import current_app

logger = logging.getLogger(__name__)

QR_PAYLOAD_TYPE = "LELCA_POS_ITEM"


class QrEncoder(Protocol):
    """
    Renders a text payload to an image (typically a PNG data URL).

    `png_data_url` is the built-in encoder; config QR_ENCODER may replace it.
    """

    def __call__(self, payload: str) -> str: ...


def build_qr_payload(item_id: str, item_name: str) -> str:
    return json.dumps({"id": item_id, "name": item_name, "type": QR_PAYLOAD_TYPE})


def parse_qr_payload(text: str) -> Optional[str]:
    """
    Return the item id encoded in a scanned payload, or None when the text is
    not one of our item codes.
    """
    try:
        data = json.loads(text)
    except (TypeError, ValueError):
        return None
    if not isinstance(data, dict) or data.get("type") != QR_PAYLOAD_TYPE:
        return None
    item_id = data.get("id")
    return item_id if isinstance(item_id, str) and item_id else None


def encode_item_qr(item_id: str, item_name: str, encoder: QrEncoder | None) -> Optional[str]:
    """
    Encode an item's QR code, degrading to None when no encoder is available
    or the encoder fails. A QR failure never blocks saving the item.
    """
    if encoder is None:
        return None
    try:
        return encoder(build_qr_payload(item_id, item_name))
    except Exception:
        logger.warning("Could not generate QR code for item %s", item_id, exc_info=True)
        return None


def png_data_url(payload: str) -> str:
    """Render `payload` as a QR code PNG: "data:image/png;base64,..."."""
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=6,
        border=1,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")
    buffer = io.BytesIO()
    img.save(buffer, format="PNG")
    return "data:image/png;base64," + base64.b64encode(buffer.getvalue()).decode("ascii")


def configured_encoder() -> QrEncoder | None:
    """
    Encoder for the current app: an injected QR_ENCODER wins, otherwise
    png_data_url when QR_CODES_ENABLED, otherwise None.
    """
    encoder = current_app.config.get("QR_ENCODER")
    if encoder is not None:
        return encoder
    if current_app.config.get("QR_CODES_ENABLED", True):
        return png_data_url
    return None
