from zxcvbn import zxcvbn
from passvault.config.config_vault import MIN_STRENGTH_SCORE


def password_strength(pw: str) -> int:
    """
    Offline password strength analysis using zxcvbn library.
    https://pypi.org/project/zxcvbn/

    Detects common passwords, names, dates, keyboard patterns and
    repeated or sequential patterns.

    Returns  - Score 0 (terrible) to 4 (great)
             - -1 if password is empty
    """
    if not pw:
        return -1
    return zxcvbn(pw[:100], max_length=100)["score"]


def warn_if_weak(pw: str, score: int | None = None) -> bool:
    """
    Print zxcvbn feedback when the score is below MIN_STRENGTH_SCORE.

    Returns True if a warning was shown.
    """
    score = password_strength(pw) if score is None else score
    if score >= MIN_STRENGTH_SCORE:
        return False

    results = zxcvbn(pw[:100], max_length=100)
    print(f"  Weak password (score {score}/4).")
    if results['feedback']['warning']:
        print(f"  Warning: {results['feedback']['warning']}")
    for suggestion in results['feedback']['suggestions']:
        print(f"   {suggestion}")
    return True
