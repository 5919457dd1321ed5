from __future__ import annotations

from hyprlogin_installer.main import main as core_main


def main(argv: list[str] | None = None) -> int:
    # `python -m hyprlogin_installer` and the console script share one entrypoint.
    return core_main(argv)


if __name__ == "__main__":
    raise SystemExit(main())
