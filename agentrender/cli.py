import click


@click.group()
def main() -> None:
    """agentrender - server-side agents, client-side UI."""


@main.command()
@click.option("--host", default=None, help="Bind host (default: from AGENTRENDER_HOST or 0.0.0.0).")
@click.option("--port", default=None, type=int, help="Bind port (default: from AGENTRENDER_PORT or 8000).")
@click.option("--reload", is_flag=True, default=False, help="Enable auto-reload for development.")
def serve(host: str | None, port: int | None, reload: bool) -> None:
    """Start the agent invoke server."""
    import uvicorn

    from agentrender.settings import AgentRenderSettings

    settings = AgentRenderSettings()

    uvicorn.run(
        "agentrender.serve.app:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
        log_level="warning",  # uvicorn's own logging is intercepted by loguru
        # Leave room for open streams to drain before uvicorn gives up.
        timeout_graceful_shutdown=settings.graceful_shutdown_timeout + 30,
    )


# ---------------------------------------------------------------------------
# Build step
# ---------------------------------------------------------------------------


@main.command()
@click.argument("source", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False, writable=True), help="Write here instead of stdout.")
@click.option("--method", default=None, help="Node method to rewrite (default: from AGENTRENDER_EXECUTE_METHOD).")
def transform(source: str, output: str | None, method: str | None) -> None:
    """Rewrite agent nodes in SOURCE into client-side render generators."""
    from pathlib import Path

    from agentrender.build.extractor import TransformError, transform_source
    from agentrender.log import setup_logging
    from agentrender.settings import AgentRenderSettings

    settings = AgentRenderSettings()
    setup_logging(settings.log_level)

    try:
        result = transform_source(
            Path(source).read_text(encoding="utf-8"),
            method=method or settings.execute_method,
            render=settings.render_method,
            filename=source,
        )
    except TransformError as exc:
        raise click.ClickException(str(exc)) from exc

    if output:
        Path(output).write_text(result + "\n", encoding="utf-8")
        click.echo(f"Wrote {output}.")
    else:
        click.echo(result)


@main.command()
@click.argument("node")
def registry(node: str) -> None:
    """Print the render registry of NODE (``module:Class``)."""
    from agentrender.build.extractor import TransformError
    from agentrender.build.registry import load_node_registry
    from agentrender.log import setup_logging
    from agentrender.serve.agents import import_object
    from agentrender.settings import AgentRenderSettings

    settings = AgentRenderSettings()
    setup_logging(settings.log_level)

    try:
        node_cls = import_object(node)
        table = load_node_registry(node_cls, method=settings.execute_method, render=settings.render_method)
    except (TransformError, ValueError, ImportError) as exc:
        raise click.ClickException(str(exc)) from exc

    for render_id, component in table.items():
        name = getattr(component, "__qualname__", None) or repr(component)
        click.echo(f"{render_id}\t{name}")


if __name__ == "__main__":
    main()
