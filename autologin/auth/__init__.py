"""Login orchestration and challenge resolution.

- LoginOrchestrator: end-to-end state machine and cookie persistence
- ChallengeDetector: races the post-submit page signals
- MfaResolver: answers MFA prompts with TOTP codes
- BotChallengeResolver: hands bot challenges to a human through the portal
"""

from autologin.auth.captcha import BotChallengeResolver
from autologin.auth.detector import ChallengeDetector, Signal
from autologin.auth.mfa import MfaResolver
from autologin.auth.orchestrator import LoginOrchestrator, LoginResult, LoginState
from autologin.auth.totp import generate_totp_code

__all__ = [
    "BotChallengeResolver",
    "ChallengeDetector",
    "LoginOrchestrator",
    "LoginResult",
    "LoginState",
    "MfaResolver",
    "Signal",
    "generate_totp_code",
]
