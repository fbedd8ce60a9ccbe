"""
CLI: comandos typer y salida Rich. No contiene lógica de convergencia.
"""
