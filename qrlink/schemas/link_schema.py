from ..utils.qr_generator import redirect_url_for


def serialize_link(link) -> dict:
    return {
        "id": link.id,
        "shortCode": link.short_code,
        "shortUrl": redirect_url_for(link.short_code),
        "destinationUrl": link.destination_url,
        "name": link.name,
        "isActive": bool(link.is_active),
        "scanCount": link.scan_count or 0,
        "createdAt": link.created_at.isoformat() if link.created_at else None,
        "updatedAt": link.updated_at.isoformat() if link.updated_at else None,
    }
