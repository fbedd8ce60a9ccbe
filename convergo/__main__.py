"""
Punto de entrada: python -m convergo
"""

from convergo.cli.app import app

if __name__ == "__main__":
    app()
