"""CLI output formatting functions.

This module contains functions for displaying contact listings, sources,
lookup values and sync results on the command line.
"""

from datetime import datetime
from typing import TYPE_CHECKING, Optional

import click

from phonedir.listing.ordering import group_of
from phonedir.sync.contact import DimensionKind

if TYPE_CHECKING:
    from phonedir.listing.query import PageResult
    from phonedir.sync.contact import Contact, Dimension, DirectorySource
    from phonedir.sync.reconciler import BatchSyncResult, SourceSyncResult

# Section heading for contacts without division or department
UNGROUPED_HEADING = "(no division or department)"


def format_timestamp(value: Optional[datetime]) -> str:
    """Format an optional datetime for display."""
    if value is None:
        return "Never"
    return value.strftime("%Y-%m-%d %H:%M:%S %Z").strip()


def section_heading(contact: "Contact") -> str:
    """Heading of the display section a contact belongs to."""
    group = group_of(contact)
    if group == 0:
        heading = contact.dimension_name(DimensionKind.DIVISION)
        department = contact.dimension_name(DimensionKind.DEPARTMENT)
        return f"{heading} / {department}" if department else heading
    if group == 1:
        return contact.dimension_name(DimensionKind.DEPARTMENT)
    return UNGROUPED_HEADING


def format_contact_row(contact: "Contact") -> str:
    """One line summary of a contact for listings."""
    parts = [f"[{contact.id}]", contact.display_name or "(no name)"]
    title = contact.dimension_name(DimensionKind.TITLE)
    if title:
        parts.append(f"- {title}")
    details = [value for value in (contact.phone, contact.email) if value]
    if details:
        parts.append(f"({', '.join(details)})")
    return " ".join(parts)


def show_contact_page(page: "PageResult[Contact]") -> None:
    """
    Display one page of contacts with section headings.

    A heading is printed whenever the section changes, including at the
    top of the page, so a page that starts mid-section is still labelled.

    Args:
        page: Page of contacts in display order
    """
    if not page.items:
        click.echo("No contacts found.")
    current: Optional[str] = None
    for contact in page.items:
        heading = section_heading(contact)
        if heading != current:
            if current is not None:
                click.echo()
            click.echo(click.style(heading, bold=True))
            current = heading
        click.echo(f"  {format_contact_row(contact)}")

    click.echo()
    click.echo(
        f"Page {page.page} of {max(page.total_pages, 1)} "
        f"({page.total_count} contact(s), {page.page_size} per page)"
    )


def show_contact_detail(contact: "Contact") -> None:
    """Display every field of a contact."""
    click.echo(f"ID: {contact.id}")
    click.echo(f"Name: {contact.display_name}")
    click.echo(f"Email: {contact.email or '-'}")
    click.echo(f"Phone: {contact.phone or '-'}")
    for kind in DimensionKind:
        value = contact.dimension(kind)
        label = kind.value.capitalize()
        if value:
            click.echo(f"{label}: {value.name} (weight {value.weight})")
        else:
            click.echo(f"{label}: -")
    click.echo(f"Type: {contact.kind.value}")
    if contact.is_directory:
        click.echo(f"Source: {contact.source_id}")
        click.echo(f"Distinguished name: {contact.distinguished_name}")
    click.echo(f"Last updated: {format_timestamp(contact.last_updated)}")


def show_source(source: "DirectorySource", contact_count: Optional[int] = None) -> None:
    """Display a directory source without its password."""
    state = (
        click.style("active", fg="green")
        if source.is_active
        else click.style("inactive", fg="yellow")
    )
    scheme = "ldaps" if source.use_ssl else "ldap"
    click.echo(f"[{source.id}] {source.name} ({state})")
    click.echo(f"  Server: {scheme}://{source.server}:{source.port}")
    click.echo(f"  Base DN: {source.base_dn or '-'}")
    click.echo(f"  Bind DN: {source.bind_dn or '(anonymous)'}")
    click.echo(f"  Filter: {source.search_filter}")
    if contact_count is not None:
        click.echo(f"  Contacts: {contact_count}")
    click.echo(f"  Last sync: {format_timestamp(source.last_sync_at)}")


def show_sync_result(result: "SourceSyncResult") -> None:
    """Display the outcome of one source sync."""
    color = "green" if result.success else "red"
    click.echo(click.style(result.summary(), fg=color))


def show_batch_result(batch: "BatchSyncResult") -> None:
    """Display the outcome of a sync of all sources."""
    if not batch.results:
        click.echo("No active sources to sync.")
        return
    for result in batch.results:
        show_sync_result(result)
    click.echo()
    click.echo(
        f"{len(batch.succeeded)} source(s) synced, {len(batch.failed)} failed."
    )


def show_dimensions(kind: DimensionKind, values: "list[Dimension]") -> None:
    """Display the values of one lookup table."""
    if not values:
        click.echo(f"No {kind.value} values.")
        return
    width = max(len(str(value.id)) for value in values)
    for value in values:
        click.echo(f"  {str(value.id).rjust(width)}  {value.weight:>3}  {value.name}")
    click.echo(f"Total: {len(values)} {kind.value} value(s)")
