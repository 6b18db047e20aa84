"""
Entry point for running varbridge as a module: python -m varbridge
"""

from varbridge.cli.commands import app

if __name__ == "__main__":
    app()
