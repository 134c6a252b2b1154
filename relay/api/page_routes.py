from fastapi import APIRouter, Depends
from fastapi.responses import HTMLResponse
from relay.core.config import Settings
from relay.dependencies import get_settings

router = APIRouter()

PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <script src="https://unpkg.com/htmx.org@1.9.6" integrity="sha384-FhXw7b6AlE/jyjlZH5iHa/tTe9EpJ1Y55RjcgPbjeWMskSxZt1v9qkxLJWNJaGni" crossorigin="anonymous"></script>
    <script src="https://unpkg.com/htmx.org@1.9.6/dist/ext/sse.js"></script>
    <title>{title}</title>
    <style>
        body {{ display: flex; flex-direction: column; min-height: 100vh; }}
        body > section {{ flex: 1; }}
        ul {{ list-style: none; }}
        li {{ display: flex; gap: 1rem; }}
    </style>
</head>
<body>
    <header><h1><a href="/">{title}</a></h1></header>
    <section>
        <ul hx-ext="sse" sse-connect="/sse" sse-swap="message" hx-swap="beforeend"></ul>
        <form hx-post="/send" hx-swap="none">
            <input name="name" placeholder="name">
            <textarea name="content"></textarea>
            <button type="submit">Send</button>
        </form>
    </section>
</body>
</html>
"""


@router.get("/", response_class=HTMLResponse)
def index(settings: Settings = Depends(get_settings)):
    return PAGE.format(title=settings.APP_NAME)
