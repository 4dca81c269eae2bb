"""Manifest commands: build and inspect chapter manifests."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from novelshelf.errors import ManifestError
from novelshelf.pipeline.manifest import load_novel, parse_chapter_list, write_manifest

manifest_app = typer.Typer(help="Build and inspect chapter manifests.", no_args_is_help=True)


@manifest_app.command("convert")
def manifest_convert(
    list_file: Path = typer.Argument(..., help="Text file with one 'Chapter N: Title' per line."),
    novel_id: str = typer.Option(..., "--novel-id", help="Novel slug, e.g. lord-of-the-mysteries."),
    base_url: str = typer.Option(..., "--base-url", help="Novel URL the chapter slugs hang off."),
    title: str = typer.Option("", "--title", help="Display title (defaults to the slug)."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Manifest path to write."),
) -> None:
    """Convert a pasted chapter list into a JSON manifest."""
    if not list_file.exists():
        typer.echo(f"❌ File not found: {list_file}")
        raise typer.Exit(code=1)

    chapters = parse_chapter_list(list_file.read_text(encoding="utf-8"), base_url)
    if not chapters:
        typer.echo("❌ No 'Chapter N' lines found.")
        raise typer.Exit(code=1)

    target = output or Path(f"{novel_id}.json")
    write_manifest(target, novel_id, base_url, chapters, title=title)
    typer.echo(f"✅ Wrote {len(chapters)} chapters to {target}")


@manifest_app.command("show")
def manifest_show(
    manifest: Path = typer.Argument(..., help="Manifest JSON file."),
) -> None:
    """Summarise a manifest and where its artifacts are written."""
    try:
        novel = load_novel(manifest)
    except ManifestError as e:
        typer.echo(f"❌ Error: {e}")
        raise typer.Exit(code=1)

    typer.echo(f"📚 {novel.title} [{novel.novel_id}]")
    typer.echo(f"   Chapters : {len(novel.chapters)} (total {novel.total})")
    typer.echo(f"   Raw      : {novel.raw_dir}")
    typer.echo(f"   Clean    : {novel.clean_dir}")
    if novel.title_overrides:
        typer.echo(f"   Overrides: {len(novel.title_overrides)} title(s)")
