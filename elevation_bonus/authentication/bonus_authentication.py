import logging
import secrets

from fastapi import Header, HTTPException, Request, status


class BonusAuthentication:
    """Gate administrative bonus routes behind the shared admin password
    and read the participant identity of participant-facing routes.

    The expected password is read from ``app.state.admin_password`` so that it
    is configured once at startup.
    """

    @staticmethod
    async def check_admin_password(
        request: Request,
        x_admin_password: str | None = Header(default=None),
    ) -> None:
        """Check the X-Admin-Password header

        Raises:
            HTTPException: The header is missing, or no admin password is configured, or it does not match
        """
        expected = getattr(request.app.state, "admin_password", None)
        if not expected or x_admin_password is None:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Admin password required",
            )
        if not secrets.compare_digest(x_admin_password.encode(), expected.encode()):
            logging.warning("Rejected admin request with an invalid password")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Invalid admin password",
            )

    @staticmethod
    async def read_participant_id(x_participant_id: str = Header()) -> str:
        """Participant identity as forwarded by the upstream session layer."""
        return x_participant_id
