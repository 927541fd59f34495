from __future__ import annotations


def normalize_phone(phone: str) -> str:
    return ''.join(ch for ch in str(phone or '') if ch.isdigit())


def mask_phone(phone: str) -> str:
    clean_phone = normalize_phone(phone)
    if len(clean_phone) < 4:
        return '***'
    return f'***{clean_phone[-4:]}'
