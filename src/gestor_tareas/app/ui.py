from __future__ import annotations

from html import escape
from urllib.parse import urlencode

from .models import Task, TaskListing

_STYLE = """
  <style>
    :root {
      --bg: #f3efe6;
      --panel: #fffaf0;
      --ink: #112433;
      --muted: #5c6b74;
      --accent: #0f8b8d;
      --accent-strong: #136f63;
      --line: #d7d1c3;
      --warn: #b00020;
    }
    * { box-sizing: border-box; }
    body {
      margin: 0;
      min-height: 100vh;
      font-family: Arial, sans-serif;
      color: var(--ink);
      background: var(--bg);
    }
    .wrap {
      max-width: 640px;
      margin: 2rem auto;
      padding: 0 16px;
    }
    .card {
      background: var(--panel);
      border: 1px solid var(--line);
      border-radius: 14px;
      padding: 16px;
      margin-bottom: 16px;
    }
    h1 { text-align: center; margin: 0 0 6px; }
    .sub { text-align: center; color: var(--muted); margin: 0; font-size: 0.9rem; }
    input[type="text"], input[type="password"] { width: 70%; padding: 0.4rem; }
    button {
      padding: 0.4rem 0.8rem;
      cursor: pointer;
      border: 0;
      border-radius: 8px;
      background: var(--accent);
      color: #fff;
    }
    button.secondary { background: var(--muted); }
    ul { list-style: none; padding: 0; margin: 0; }
    li {
      display: flex;
      gap: 8px;
      align-items: center;
      padding: 6px 0;
      border-bottom: 1px solid var(--line);
    }
    li .texto { flex: 1; }
    li.done .texto { text-decoration: line-through; color: var(--muted); }
    form.inline { display: inline; }
    .filters a { margin-right: 10px; color: var(--accent-strong); }
    .filters a.active { font-weight: 700; }
    .error { color: var(--warn); }
  </style>
"""


def _page(*, title: str, body: str) -> str:
    return f"""<!DOCTYPE html>
<html lang="es">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>{escape(title)}</title>
{_STYLE}
</head>
<body>
  <main class="wrap">
{body}
  </main>
</body>
</html>
"""


def _filter_link(label: str, value: str, listing: TaskListing) -> str:
    params = {"filter": value}
    if listing.query:
        params["q"] = listing.query
    css = ' class="active"' if listing.status_filter == value else ""
    return f'<a href="/?{escape(urlencode(params))}"{css}>{label}</a>'


def _render_task(task: Task) -> str:
    done_class = ' class="done"' if task.completada else ""
    toggle_label = "Reabrir" if task.completada else "Completar"
    return f"""
      <li{done_class}>
        <span class="texto">{escape(task.texto)}</span>
        <form class="inline" action="/tareas/{task.id}/toggle" method="POST">
          <button type="submit">{toggle_label}</button>
        </form>
        <form class="inline" action="/tareas/{task.id}/borrar" method="POST">
          <button type="submit" class="secondary">Borrar</button>
        </form>
      </li>"""


def render_homepage(
    listing: TaskListing,
    *,
    app_name: str,
    use_db: bool,
    username: str | None = None,
) -> str:
    """Render the task list page for an already filtered listing."""
    mode_label = "PostgreSQL" if use_db else "memoria"
    user_bar = ""
    if username:
        user_bar = (
            f'<p class="sub">Sesión: <strong>{escape(username)}</strong> · '
            '<a href="/logout">Cerrar sesión</a></p>'
        )

    if listing.tasks:
        items = "".join(_render_task(task) for task in listing.tasks)
    elif listing.counts.total == 0:
        items = "<li>No hay tareas aún.</li>"
    else:
        items = "<li>Ninguna tarea coincide.</li>"

    counts = listing.counts
    filters = " ".join(
        [
            _filter_link("Todas", "all", listing),
            _filter_link("Pendientes", "pending", listing),
            _filter_link("Completadas", "completed", listing),
        ]
    )
    body = f"""
    <section class="card">
      <h1>{escape(app_name)}</h1>
      <p class="sub">Almacenamiento: {mode_label}</p>
      {user_bar}
    </section>
    <section class="card">
      <form action="/tareas" method="POST">
        <input type="text" name="texto" placeholder="Escribe una tarea..." required>
        <button type="submit">Añadir</button>
      </form>
    </section>
    <section class="card">
      <form action="/" method="GET">
        <input type="hidden" name="filter" value="{escape(listing.status_filter)}">
        <input type="text" name="q" value="{escape(listing.query)}" placeholder="Buscar...">
        <button type="submit">Buscar</button>
      </form>
      <p class="filters">{filters}</p>
      <p class="sub">
        Total: {counts.total} · Pendientes: {counts.pending} · Completadas: {counts.completed}
      </p>
    </section>
    <section class="card">
      <h2>Tareas:</h2>
      <ul>{items}</ul>
    </section>"""
    return _page(title=app_name, body=body)


def render_auth_page(*, mode: str, app_name: str, error: str | None = None) -> str:
    """Render the login (`mode="login"`) or registration form."""
    if mode == "register":
        heading = "Crear cuenta"
        action = "/register"
        submit = "Registrarse"
        alternate = '<a href="/login">¿Ya tienes cuenta? Inicia sesión</a>'
    else:
        heading = "Iniciar sesión"
        action = "/login"
        submit = "Entrar"
        alternate = '<a href="/register">¿No tienes cuenta? Regístrate</a>'
    error_html = f'<p class="error">{escape(error)}</p>' if error else ""
    body = f"""
    <section class="card">
      <h1>{escape(app_name)}</h1>
      <p class="sub">{heading}</p>
    </section>
    <section class="card">
      {error_html}
      <form action="{action}" method="POST">
        <p><input type="text" name="username" placeholder="Usuario" required></p>
        <p><input type="password" name="password" placeholder="Contraseña" required></p>
        <button type="submit">{submit}</button>
      </form>
      <p>{alternate}</p>
    </section>"""
    return _page(title=f"{heading} · {app_name}", body=body)
