def company_room(company_id: str) -> str:
    """Socket.IO room every member of a company joins on connect."""
    return f"company:{company_id}"
