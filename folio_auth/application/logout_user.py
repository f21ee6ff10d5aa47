from folio_auth.application.revocation import RevocationLedger


async def logout_user(ledger: RevocationLedger, token: str) -> None:
    """Revoke the token the request was authenticated with. The client drops it too."""
    await ledger.revoke(token)
