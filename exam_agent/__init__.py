from __future__ import annotations

# Load `.env` before Settings is first built so GEMINI_API_KEYS from the
# working directory is visible to the CLI.
try:
    from exam_agent.utils.env import load_project_dotenv

    load_project_dotenv()
except OSError:
    pass
