"""Command line interface for DocsLM."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import List, NoReturn, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table

from docslm.config import AppConfig
from docslm.embedding.encoder import EmbeddingConfig, EmbeddingModel
from docslm.errors import DocsLMError
from docslm.index.processor import DocumentProcessor, IndexStats
from docslm.index.storage import VectorStore
from docslm.ingestion.loader import DocumentLoader
from docslm.llm.completion import OllamaCompletion
from docslm.models import StoreMode
from docslm.rag.service import QueryService
from docslm.utils.text import TextSplitter


console = Console()
app = typer.Typer(help="DocsLM - question answering over local documentation")


@app.callback()
def main() -> None:
    load_dotenv()


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load_config(
    source: Path | None = None,
    persist: Path | None = None,
    collection: str | None = None,
) -> AppConfig:
    config = AppConfig.from_env()
    if source is not None:
        config.source_path = source
    if persist is not None:
        config.persist_path = persist
    if collection is not None:
        config.collection_name = collection
    return config.validate()


def _build_store(config: AppConfig) -> VectorStore:
    embedder = EmbeddingModel(EmbeddingConfig(model_name=config.embedding_model))
    return VectorStore(
        embedder,
        persist_path=config.resolve_persist_path(Path.cwd()),
        collection_name=config.collection_name,
    )


def _build_processor(config: AppConfig, mode: StoreMode) -> DocumentProcessor:
    loader = DocumentLoader(
        config.resolve_source_path(Path.cwd()),
        TextSplitter(chunk_size=config.chunk_chars, chunk_overlap=config.overlap),
    )
    return DocumentProcessor(loader, _build_store(config), mode=mode).initialize()


def _fail(exc: Exception) -> NoReturn:
    console.print(f"[red]Error:[/red] {exc}")
    raise typer.Exit(code=1)


def _print_stats(stats: IndexStats) -> None:
    console.print(f"Processed: {stats.processed}, added: {stats.added}, skipped: {stats.skipped}")


SourceOption = typer.Option(None, "--source", help="Directory with markdown documents")
PersistOption = typer.Option(None, "--persist", help="Directory for persisted collections")
CollectionOption = typer.Option(None, "--collection", help="Collection name")
VerboseOption = typer.Option(False, "--verbose", "-v", help="Verbose logging")
ModeOption = typer.Option(
    None,
    "--ephemeral/--durable",
    help="Index documents in memory first, or read the persisted collection (default: USE_PERSISTENT_STORAGE)",
)


@app.command()
def index(
    source: Optional[Path] = SourceOption,
    persist: Optional[Path] = PersistOption,
    collection: Optional[str] = CollectionOption,
    verbose: bool = VerboseOption,
) -> None:
    """Index new or modified documents into the persisted collection."""
    _setup_logging(verbose)
    try:
        config = _load_config(source, persist, collection)
        processor = _build_processor(config, StoreMode.DURABLE)
        console.print(f"Indexing [bold]{config.source_path}[/bold] into collection {config.collection_name}...")
        stats = processor.process_all_documents()
    except DocsLMError as exc:
        _fail(exc)
    _print_stats(stats)


@app.command()
def refresh(
    source: Optional[Path] = SourceOption,
    persist: Optional[Path] = PersistOption,
    collection: Optional[str] = CollectionOption,
    verbose: bool = VerboseOption,
) -> None:
    """Clear the collection and index every document again."""
    _setup_logging(verbose)
    try:
        config = _load_config(source, persist, collection)
        stats = _build_processor(config, StoreMode.DURABLE).refresh_database()
    except DocsLMError as exc:
        _fail(exc)
    _print_stats(stats)


@app.command()
def check(
    source: Optional[Path] = SourceOption,
    persist: Optional[Path] = PersistOption,
    collection: Optional[str] = CollectionOption,
    verbose: bool = VerboseOption,
) -> None:
    """List documents that are not indexed in their current version."""
    _setup_logging(verbose)
    try:
        config = _load_config(source, persist, collection)
        report = _build_processor(config, StoreMode.DURABLE).check_for_updates()
    except DocsLMError as exc:
        _fail(exc)

    if not report.has_updates:
        console.print(f"[green]Up to date[/green] ({report.total_files} files).")
        return
    console.print(f"{len(report.files_to_update)} of {report.total_files} files need indexing:")
    for path in report.files_to_update:
        console.print(f"  {path}")


def _open_store(config: AppConfig, ephemeral: bool | None) -> VectorStore:
    """Open the persisted collection, or index the sources into memory.

    Without an explicit choice the mode follows ``config.persistent``.
    """
    if ephemeral is None:
        ephemeral = not config.persistent
    if not ephemeral:
        return _build_store(config).initialize(StoreMode.DURABLE)
    processor = _build_processor(config, StoreMode.EPHEMERAL)
    processor.process_all_documents()
    return processor.store


def _query_service(config: AppConfig, ephemeral: bool | None) -> QueryService:
    llm = OllamaCompletion(config.llm_model, host=config.llm_host)
    return QueryService(
        _open_store(config, ephemeral),
        llm,
        top_k=config.top_k,
        cache_enabled=config.cache_enabled,
        cache_size=config.cache_size,
    ).initialize()


def _parse_filter(pairs: List[str] | None) -> dict[str, str]:
    where: dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise typer.BadParameter(f"Filter must look like key=value, got {pair!r}")
        where[key] = value
    return where


@app.command()
def search(
    query: str = typer.Argument(..., help="Query text"),
    top_k: Optional[int] = typer.Option(None, "--top-k", "-k", help="Number of results to display"),
    where: Optional[List[str]] = typer.Option(None, "--filter", "-f", help="Metadata filter key=value"),
    ephemeral: Optional[bool] = ModeOption,
    source: Optional[Path] = SourceOption,
    persist: Optional[Path] = PersistOption,
    collection: Optional[str] = CollectionOption,
    verbose: bool = VerboseOption,
) -> None:
    """Show the chunks most similar to a query."""
    _setup_logging(verbose)
    metadata_filter = _parse_filter(where)
    try:
        config = _load_config(source, persist, collection)
        store = _open_store(config, ephemeral)
        k = config.top_k if top_k is None else top_k
        results = store.similarity_search_with_scores(query, k, metadata_filter)
    except DocsLMError as exc:
        _fail(exc)

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Score")
    table.add_column("Source")
    table.add_column("Snippet")
    for chunk, score in results:
        snippet = chunk.text.replace("\n", " ")
        table.add_row(f"{score:.4f}", chunk.source, snippet[:180])
    console.print(table)


@app.command()
def ask(
    question: str = typer.Argument(..., help="Question to answer"),
    top_k: Optional[int] = typer.Option(None, "--top-k", "-k", help="Chunks to retrieve"),
    where: Optional[List[str]] = typer.Option(None, "--filter", "-f", help="Metadata filter key=value"),
    stream: bool = typer.Option(False, "--stream", help="Print the answer as it is generated"),
    ephemeral: Optional[bool] = ModeOption,
    source: Optional[Path] = SourceOption,
    persist: Optional[Path] = PersistOption,
    collection: Optional[str] = CollectionOption,
    verbose: bool = VerboseOption,
) -> None:
    """Answer a question grounded in the indexed documents."""
    _setup_logging(verbose)
    metadata_filter = _parse_filter(where)
    try:
        config = _load_config(source, persist, collection)
        service = _query_service(config, ephemeral)
        if stream:
            for fragment in service.stream(question, k=top_k, filter=metadata_filter):
                console.print(fragment, end="")
            console.print()
            return
        result = service.ask_with_sources(question, k=top_k, filter=metadata_filter)
    except DocsLMError as exc:
        _fail(exc)

    console.print(result["answer"])
    if result["sources"]:
        console.print(f"\n[bold]Sources ({result['metadata']['sources_count']}):[/bold]")
        for index, item in enumerate(result["sources"], start=1):
            console.print(f"  {index}. {item['metadata'].get('source', 'unknown')}")


@app.command()
def status(
    persist: Optional[Path] = PersistOption,
    collection: Optional[str] = CollectionOption,
) -> None:
    """Show the persisted collection size."""
    try:
        config = _load_config(persist=persist, collection=collection)
        store = _build_store(config).initialize(StoreMode.DURABLE)
    except DocsLMError as exc:
        _fail(exc)
    console.print(f"Collection: {store.collection_name}")
    console.print(f"Location: {store.persistence.path}")
    console.print(f"Documents: {store.get_document_count()}")


@app.command("export")
def export_collection(
    output: Path = typer.Argument(..., help="JSON file to write"),
    persist: Optional[Path] = PersistOption,
    collection: Optional[str] = CollectionOption,
) -> None:
    """Export the persisted collection to a JSON file."""
    try:
        config = _load_config(persist=persist, collection=collection)
        data = _build_store(config).initialize(StoreMode.DURABLE).export_all()
    except DocsLMError as exc:
        _fail(exc)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(data, ensure_ascii=True, indent=2), encoding="utf-8")
    console.print(f"Exported {len(data['data']['ids'])} documents to {output}")


@app.command("import")
def import_collection(
    input_file: Path = typer.Argument(..., exists=True, dir_okay=False, help="JSON export to load"),
    replace: bool = typer.Option(False, "--replace", help="Clear the collection before importing"),
    persist: Optional[Path] = PersistOption,
    collection: Optional[str] = CollectionOption,
) -> None:
    """Append an exported collection to the persisted one."""
    try:
        data = json.loads(input_file.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid export file: {exc}") from exc
    try:
        config = _load_config(persist=persist, collection=collection)
        store = _build_store(config).initialize(StoreMode.DURABLE)
        imported = store.import_all(data, replace=replace)
    except (DocsLMError, ValueError) as exc:
        _fail(exc)
    console.print(f"Imported {imported} documents (total {store.get_document_count()}).")


@app.command()
def clear(
    persist: Optional[Path] = PersistOption,
    collection: Optional[str] = CollectionOption,
    yes: bool = typer.Option(False, "--yes", "-y", help="Do not ask for confirmation"),
) -> None:
    """Remove every document from the persisted collection."""
    if not yes:
        typer.confirm("Delete all documents from the collection?", abort=True)
    try:
        config = _load_config(persist=persist, collection=collection)
        _build_store(config).initialize(StoreMode.DURABLE).clear()
    except DocsLMError as exc:
        _fail(exc)
    console.print("Collection cleared.")
