"""
MatchPulse CLI Entry Point

Allows running the package as a module: python -m matchpulse
"""


def main():
    """Main entry point for the CLI."""
    from matchpulse.cli import app

    app()


if __name__ == "__main__":
    main()
