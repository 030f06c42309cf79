"""Web package exposing the model router statistics.

To start the web server from the CLI use:
    llmkit serve --port 8000
"""
