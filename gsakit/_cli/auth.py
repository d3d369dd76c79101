#  GSAKit - Python client for Apple's GrandSlam Authentication service
#  Copyright (C) 2024  Cypheriel
from __future__ import annotations

import asyncio
from logging import getLogger
from typing import Annotated

import typer

from .._util.aio import run_async
from ..anisette import DEFAULT_ANISETTE_SERVER, fetch_anisette_data
from ..anisette.exceptions import AnisetteError
from ..gsa import GrandSlamError, GSAClient, VerificationKind, VerificationRequest
from .util.rich_console import console, err_console

__ALIAS__ = "a"

app = typer.Typer(no_args_is_help=True)
logger = getLogger(__name__)

PROMPTS = {
    VerificationKind.TRUSTED_DEVICE: "Enter the code shown on your trusted device",
    VerificationKind.SMS: "Enter the code sent to your phone",
}


async def prompt_for_code(request: VerificationRequest) -> None:
    code = await asyncio.to_thread(typer.prompt, PROMPTS[request.kind], default="", show_default=False)

    if not code.strip():
        logger.warning("No verification code entered.")
        request.cancel()
        return

    request.submit(code.strip())


@app.command(help="Sign in with an Apple ID and show the associated developer account.")
@app.command(name="signin", hidden=True)
@run_async
async def login(
    apple_id: Annotated[
        str,
        typer.Option(
            prompt="Apple ID",
            envvar="APPLE_ID",
            help="The Apple ID to sign in with.",
        ),
    ],
    password: Annotated[
        str,
        typer.Option(
            prompt=True,
            hide_input=True,
            envvar="APPLE_ID_PASSWORD",
            help="The password of the Apple ID.",
            show_default=False,
        ),
    ],
    anisette_url: Annotated[
        str,
        typer.Option(
            envvar="GSAKIT_ANISETTE_URL",
            help="The anisette server to fetch attestation data from.",
        ),
    ] = DEFAULT_ANISETTE_SERVER,
) -> None:
    try:
        anisette_data = await fetch_anisette_data(anisette_url)
    except AnisetteError as e:
        err_console.print(f"[red]Failed to fetch anisette data:[/] {e}")
        raise typer.Exit(1) from e

    async with GSAClient() as client:
        try:
            account, session = await client.authenticate(apple_id, password, anisette_data, prompt_for_code)
        except GrandSlamError as e:
            err_console.print(f"[red]Authentication failed:[/] {e}")
            raise typer.Exit(1) from e

    console.print(
        f"Signed in as [bold]{account.name}[/] ({account.apple_id})\n"
        f"Person ID: {account.identifier}\n"
        f"DSID: {session.dsid}",
    )


@app.command(help="Fetch attestation data from an anisette server and print its headers.")
@run_async
async def anisette(
    anisette_url: Annotated[
        str,
        typer.Option(
            envvar="GSAKIT_ANISETTE_URL",
            help="The anisette server to fetch attestation data from.",
        ),
    ] = DEFAULT_ANISETTE_SERVER,
) -> None:
    try:
        anisette_data = await fetch_anisette_data(anisette_url)
    except AnisetteError as e:
        err_console.print(f"[red]Failed to fetch anisette data:[/] {e}")
        raise typer.Exit(1) from e

    for name, value in anisette_data.headers.items():
        console.print(f"[bold]{name}[/]: {value}")
