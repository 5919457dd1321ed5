"""hypr-login installer.

Moves a machine from a graphical login manager to console autologin on
tty1 -> Hyprland -> hyprlock as the login screen.

Core design goals:
- Detect, show, confirm, then mutate
- Atomic, backed-up file installs
- Staged testing on a second console before the cutover
- The fallback login manager stays enabled until the operator types "yes"
- Centralized logging
"""

__all__ = []
