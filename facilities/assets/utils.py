"""Identifier generation for assets"""
import random
import re
import time

from .models import Asset

BARCODE_MIN_LENGTH = 8


def generate_asset_id(asset_type):
    """
    TYPE prefix + last 6 digits of the millisecond timestamp + 3 random digits.

    ELECTRONICS -> EL482913057
    """
    prefix = (asset_type or 'AS')[:2].upper()
    timestamp = str(int(time.time() * 1000))[-6:]
    suffix = f"{random.randint(0, 999):03d}"
    return f"{prefix}{timestamp}{suffix}"


def sanitize_barcode(value):
    """Keep alphanumerics only and pad with zeros to the scanner minimum"""
    cleaned = re.sub(r'[^A-Za-z0-9]', '', value or '')
    return cleaned.ljust(BARCODE_MIN_LENGTH, '0')


def generate_unique_asset_identifiers(asset_type, reserved=None):
    """Return an (asset_id, barcode) pair unused in the database and in `reserved`"""
    reserved = reserved if reserved is not None else set()
    while True:
        asset_id = generate_asset_id(asset_type)
        barcode = sanitize_barcode(asset_id)
        if asset_id in reserved or barcode in reserved:
            continue
        if Asset.objects.filter(asset_id=asset_id).exists() or Asset.objects.filter(barcode=barcode).exists():
            continue
        reserved.update({asset_id, barcode})
        return asset_id, barcode
