from __future__ import annotations

from datetime import UTC, datetime

from fastapi.testclient import TestClient

from gestor_tareas.app.listing import build_listing
from gestor_tareas.app.models import Task
from gestor_tareas.app.ui import render_auth_page, render_homepage


def test_home_page_serves_html(client: TestClient) -> None:
    response = client.get("/")
    assert response.status_code == 200
    assert "text/html" in response.headers["content-type"]
    assert "Gestor de tareas" in response.text
    assert 'name="texto"' in response.text
    assert "Almacenamiento: memoria" in response.text


def test_render_escapes_user_text() -> None:
    task = Task(id=1, texto="<script>alert(1)</script>", creada_en=datetime.now(tz=UTC))
    html = render_homepage(build_listing([task]), app_name="Lista", use_db=True)

    assert "<script>alert(1)</script>" not in html
    assert "&lt;script&gt;" in html
    assert "Almacenamiento: PostgreSQL" in html
    assert 'action="/tareas/1/toggle"' in html
    assert 'action="/tareas/1/borrar"' in html


def test_render_marks_completed_and_active_filter() -> None:
    task = Task(id=7, texto="Hecha", completada=True, creada_en=datetime.now(tz=UTC))
    html = render_homepage(
        build_listing([task], "completed", "he"),
        app_name="Lista",
        use_db=False,
        username="ana",
    )

    assert '<li class="done">' in html
    assert "Reabrir" in html
    assert 'href="/?filter=completed&amp;q=he" class="active"' in html
    assert "Cerrar sesión" in html


def test_render_auth_page_shows_error() -> None:
    html = render_auth_page(mode="login", app_name="Lista", error="Usuario no encontrado")
    assert 'action="/login"' in html
    assert "Usuario no encontrado" in html

    register = render_auth_page(mode="register", app_name="Lista")
    assert 'action="/register"' in register
    assert 'class="error"' not in register
