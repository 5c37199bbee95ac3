"""
gptline: a terminal chat client for OpenAI-compatible streaming endpoints.
"""
