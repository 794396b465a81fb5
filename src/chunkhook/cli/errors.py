"""chunkhook rich error messages — actionable feedback.

Every error shown to the user must contain:
  1. What went wrong (clear cause)
  2. The exact action the user should take to fix it

Usage:
    from chunkhook.cli.errors import err_no_db
    console.print(err_no_db(str(db)))
    raise typer.Exit(1)
"""

from __future__ import annotations

from chunkhook.errors import (
    BlobMissing,
    ChecksumMismatch,
    ChunkhookError,
    IndexCorruption,
    SourceReadError,
    UploadRejected,
)


def err_no_db(db_path: str) -> str:
    """No database at the configured path."""
    return (
        f"[red]Error:[/] No database found at '{db_path}'.\n"
        "  Run:  chunkhook init"
    )


def err_no_webhook() -> str:
    """Ingest requested but no upload endpoint configured."""
    return (
        "[red]Error:[/] No webhook URL configured for uploads.\n"
        "  Set:  export CHUNKHOOK_WEBHOOK_URL=https://...\n"
        "  or pass --webhook URL"
    )


def err_bad_webhook(message: str) -> str:
    """Webhook URL from --webhook or the environment is not usable."""
    return (
        f"[red]Error:[/] Invalid webhook URL.\n"
        f"  {message}\n"
        "  Pass an http(s):// URL via --webhook or CHUNKHOOK_WEBHOOK_URL"
    )


def err_config(message: str) -> str:
    """Config file could not be loaded."""
    return (
        f"[red]Error:[/] Invalid configuration.\n"
        f"  {message}\n"
        "  Fix chunkhook.yaml / ~/.chunkhook/config.yaml and run the command again."
    )


def err_source_not_found(path: str) -> str:
    """Ingest source path is missing or not a regular file."""
    return (
        f"[red]Error:[/] Source is not a readable file: '{path}'\n"
        "  Use:  chunkhook ingest PATH  (or '-' with --name to read stdin)"
    )


def err_stdin_needs_name() -> str:
    """Ingest from stdin without a stored name."""
    return (
        "[red]Error:[/] Reading from stdin needs a name for the stored file.\n"
        "  Use:  chunkhook ingest - --name NAME"
    )


def err_file_not_found(file_id: int) -> str:
    """No complete file with this id."""
    return (
        f"[yellow]File not found:[/] file_id={file_id} is not in the store.\n"
        "  Run:  chunkhook list  to see all stored files."
    )


def err_not_pending(file_id: int) -> str:
    """Discard requested for a file that is not a pending ingest."""
    return (
        f"[yellow]No pending ingest:[/] file_id={file_id} is not pending.\n"
        "  Run:  chunkhook pending  to see unfinished ingests."
    )


def _stage(exc: ChunkhookError, total_chunks: int | None) -> str:
    if exc.chunk_index is not None:
        total = "?" if total_chunks is None else str(total_chunks)
        return f"chunk {exc.chunk_index + 1}/{total}"
    if isinstance(exc, SourceReadError):
        return "reading the source"
    if isinstance(exc, IndexCorruption):
        return "commit"
    return "start"


def err_ingest_failed(name: str, exc: ChunkhookError, total_chunks: int | None) -> str:
    """Ingest aborted; nothing was recorded."""
    if isinstance(exc, UploadRejected):
        action = "  Check the webhook URL and endpoint limits, then ingest again."
    else:
        action = "  Nothing was recorded. Run:  chunkhook ingest  again to retry from scratch."
    return (
        f"[red]Error:[/] Ingest of '{name}' failed at {_stage(exc, total_chunks)}: {exc}\n"
        f"{action}\n"
        "  Chunks uploaded before the failure remain on the remote as orphans."
    )


def err_export_failed(file_id: int, exc: ChunkhookError, total_chunks: int | None) -> str:
    """Retrieval stopped at a specific chunk."""
    if isinstance(exc, ChecksumMismatch):
        action = f"  Run:  chunkhook verify {file_id}  to list every corrupt chunk."
    elif isinstance(exc, BlobMissing):
        action = "  The remote blob was deleted; the file cannot be fully restored."
    elif isinstance(exc, IndexCorruption):
        action = "  The index is inconsistent. Restore the database from a backup."
    else:
        action = "  Check the network or proxy settings and export again."
    return (
        f"[red]Error:[/] Export of file_id={file_id} failed at "
        f"{_stage(exc, total_chunks)}: {exc}\n"
        f"{action}\n"
        "  Output holds only the chunks verified before the failure."
    )


def err_directory(message: str) -> str:
    """Invalid directory operation."""
    return (
        f"[red]Error:[/] {message}\n"
        "  Run:  chunkhook dir list  to see existing directories."
    )


def warn_orphaned_blobs(chunk_count: int) -> str:
    """Warning shown after records are removed — remote blobs are not deleted."""
    return (
        f"[yellow]⚠[/] {chunk_count} remote blob(s) are no longer referenced.\n"
        "  They are not deleted from the remote endpoint; remove them there if needed."
    )
