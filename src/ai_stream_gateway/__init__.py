"""
AI stream gateway package.

Provides:
- Prompt rendering for editor writing actions
- Provider adapters for OpenAI, Gemini and Ollama (single-shot and streaming)
- A FastAPI surface that relays backend output as uniform SSE frames
"""
