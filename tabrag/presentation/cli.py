
import asyncio
import logging
import sys
import time

import httpx

from tabrag.config.settings import settings
from tabrag.container import configure_container, container
from tabrag.core.protocols.embedder import EmbedderProtocol
from tabrag.core.services.chat_service import ChatService
from tabrag.core.services.ingest_service import IngestService

logging.basicConfig(level=settings.log_level, format="%(message)s")
logger = logging.getLogger(__name__)

USAGE = """Usage: python -m tabrag.presentation.cli <command>
Commands:
  embed <csv_path> <file_id>   Embed a CSV file (replaces previous rows of file_id)
  delete <file_id>             Remove embeddings of a file
  ask "<question>" [--no-rag]  Ask a question
  check                        Make sure the Ollama models are available"""


def ensure_ollama_model(model: str) -> bool:
    """Ensure Ollama model is available.

    Returns:
        True if model ready, False otherwise.
    """
    base_url = settings.llm_base_url.replace("/v1", "")

    logger.info(f"Checking Ollama model: {model}")

    for attempt in range(30):
        try:
            resp = httpx.get(f"{base_url}/api/tags", timeout=5)
            if resp.status_code == 200:
                models = [m["name"] for m in resp.json().get("models", [])]
                if any(model in m for m in models):
                    logger.info(f"Model {model} is ready")
                    return True

                logger.info(f"Pulling model {model}...")
                pull_resp = httpx.post(
                    f"{base_url}/api/pull",
                    json={"name": model, "stream": False},
                    timeout=600,
                )
                if pull_resp.status_code == 200:
                    logger.info(f"Model {model} pulled successfully")
                    return True
                logger.error(f"Failed to pull model: {pull_resp.text}")
        except httpx.HTTPError:
            logger.info(f"Waiting for Ollama... ({attempt + 1}/30)")
            time.sleep(2)

    logger.error("Ollama not available")
    return False


def _parse_file_id(raw: str) -> int:
    try:
        return int(raw)
    except ValueError:
        print(f"file_id must be an integer, got: {raw}")
        sys.exit(1)


def cmd_embed(path: str, raw_file_id: str):
    """Embed command - index one CSV file."""
    configure_container(settings)
    container.resolve(EmbedderProtocol).warmup()
    ingest_service = container.resolve(IngestService)

    result = ingest_service.embed_path(path, _parse_file_id(raw_file_id))
    print(result.message)
    if result.success:
        print(f"Text columns: {', '.join(result.text_columns)}")
        print(f"Number columns: {', '.join(result.number_columns) or '-'}")
    else:
        sys.exit(1)


def cmd_delete(raw_file_id: str):
    """Delete command - drop embeddings of one file."""
    configure_container(settings)
    ingest_service = container.resolve(IngestService)

    result = ingest_service.delete_file_embeddings(_parse_file_id(raw_file_id))
    print(result.message)
    if not result.success:
        sys.exit(1)


def cmd_ask(question: str, use_rag: bool = True):
    """Ask command - answer one question."""
    configure_container(settings)
    container.resolve(EmbedderProtocol).warmup()
    chat_service = container.resolve(ChatService)

    response = asyncio.run(chat_service.chat(question, use_rag=use_rag))

    print(response.message)
    print()
    if response.intent is not None:
        print(f"Intent: {response.intent.intent.value}")
    for i, source in enumerate(response.sources, 1):
        print(
            f"  [{i}] {source.file_name} #{source.row_index} "
            f"(relevance {source.relevance_score:.2f}): {source.text[:80]}"
        )
    if response.response_time is not None:
        print(f"Time: {response.response_time:.2f}s")

    if not response.success:
        sys.exit(1)


def cmd_check():
    """Check command - make sure both models are pulled."""
    models = dict.fromkeys([settings.llm_model, settings.llm_intent_model])
    if not all(ensure_ollama_model(model) for model in models):
        sys.exit(1)


def main():
    """CLI entry point."""
    if len(sys.argv) < 2:
        print(USAGE)
        sys.exit(1)

    command, args = sys.argv[1], sys.argv[2:]

    if command == "embed" and len(args) == 2:
        cmd_embed(args[0], args[1])
    elif command == "delete" and len(args) == 1:
        cmd_delete(args[0])
    elif command == "ask" and args:
        use_rag = "--no-rag" not in args
        question = " ".join(a for a in args if a != "--no-rag")
        cmd_ask(question, use_rag=use_rag)
    elif command == "check":
        cmd_check()
    else:
        print(f"Unknown command or arguments: {' '.join(sys.argv[1:])}")
        print(USAGE)
        sys.exit(1)


if __name__ == "__main__":
    main()
