from datetime import datetime, timezone


def utcnow():
    # Naive UTC, matching what the DateTime columns store.
    return datetime.now(timezone.utc).replace(tzinfo=None)


def mask_phone(phone, visible_digits=4):
    if not phone:
        return ''
    if len(phone) <= visible_digits:
        return phone
    return '*' * (len(phone) - visible_digits) + phone[-visible_digits:]
