#!/usr/bin/env python3
"""Build the knowledge-base JSON file loaded at startup (KNOWLEDGE_FILE)."""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from leadline.models import Tenant
from leadline.services.knowledge.retriever import KeywordKnowledgeBase, load_snippets


def chunk_text(text: str, chunk_size: int = 120, overlap: int = 20) -> list[str]:
    """Split text into chunks with overlap."""
    words = text.split()
    chunks = []

    for i in range(0, len(words), chunk_size - overlap):
        chunk = " ".join(words[i:i + chunk_size])
        if chunk:
            chunks.append(chunk)

    return chunks


def entries_from_text(file_path: Path, tenant: str, chunk_size: int) -> list[dict]:
    """One content entry per chunk, categorized by file name."""
    content = file_path.read_text(encoding="utf-8")
    return [
        {
            "tenant": tenant,
            "category": file_path.stem,
            "content": chunk,
            "metadata": {"source": str(file_path), "chunk_index": i},
        }
        for i, chunk in enumerate(chunk_text(content, chunk_size=chunk_size))
    ]


def entries_from_json(file_path: Path, tenant: str) -> list[dict]:
    """FAQ or content entries; the tenant fills in where missing."""
    with open(file_path, encoding="utf-8") as f:
        raw_entries = json.load(f)
    return [{"tenant": tenant, **entry} for entry in raw_entries if isinstance(entry, dict)]


def collect(path: Path, tenant: str, chunk_size: int, extensions: list[str]) -> list[dict]:
    files = [path] if path.is_file() else sorted(
        p for p in path.rglob("*") if p.suffix in extensions or p.suffix == ".json"
    )

    entries: list[dict] = []
    for file_path in files:
        if file_path.suffix == ".json":
            found = entries_from_json(file_path, tenant)
        else:
            found = entries_from_text(file_path, tenant, chunk_size)
        print(f"Processing: {file_path} ({len(found)} entries)")
        entries.extend(found)
    return entries


async def run_queries(output: Path, tenant: str, queries: list[str]) -> None:
    """Search the written file the same way the service will."""
    knowledge = KeywordKnowledgeBase(load_snippets(output))
    for query in queries:
        results = await knowledge.search(query, Tenant(tenant), limit=2)
        print(f"\nQuery: {query}")
        if not results:
            print("  No matches")
        for snippet in results:
            text = snippet.answer or snippet.content or ""
            print(f"  [{snippet.category}] {text[:80]}")


def main() -> None:
    parser = argparse.ArgumentParser(description="Build the knowledge-base file")
    parser.add_argument("path", help="JSON file, text file or directory to read")
    parser.add_argument("-o", "--output", default="data/knowledge.json", help="File to write")
    parser.add_argument("--tenant", default="proxe", choices=[t.value for t in Tenant])
    parser.add_argument("--chunk-size", type=int, default=120, help="Chunk size in words")
    parser.add_argument("--extensions", nargs="+", default=[".txt", ".md"], help="Text file extensions")
    parser.add_argument("--query", action="append", default=[], help="Test query to run afterwards")

    args = parser.parse_args()

    path = Path(args.path)
    if not path.exists():
        print(f"Error: Path does not exist: {path}")
        sys.exit(1)

    entries = collect(path, args.tenant, args.chunk_size, args.extensions)
    if not entries:
        print("No entries found")
        sys.exit(1)

    output = Path(args.output)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(entries, indent=2, ensure_ascii=False), encoding="utf-8")
    print(f"\nWrote {len(entries)} entries to {output}")

    if args.query:
        asyncio.run(run_queries(output, args.tenant, args.query))


if __name__ == "__main__":
    main()
