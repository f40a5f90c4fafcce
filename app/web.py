"""HTML page rendering for the listing and player views."""

from __future__ import annotations

import re
from html import escape
from textwrap import dedent
from typing import Any, Sequence
from urllib.parse import quote

from .config import Settings
from .filtering import NO_RESULTS_MESSAGE, FilterResult
from .models import CatalogItem
from .utils import script_json


BASE_STYLE = dedent(
    """
    <style>
        :root {
            color-scheme: dark;
            font-family: 'Inter', 'Segoe UI', system-ui, -apple-system, sans-serif;
            --surface: #141414;
            --surface-strong: #1f1f1f;
            --text-primary: #f5f5f5;
            --text-muted: #a6a6a6;
            --outline: #2b2b2b;
            --accent: #e50914;
            background: #000000;
            color: var(--text-primary);
        }
        * { box-sizing: border-box; }
        body { margin: 0; min-height: 100vh; background: #000000; }
        a { color: inherit; text-decoration: none; }
        main { max-width: 1200px; margin: 0 auto; padding: 2rem 1.5rem 4rem; }
        header.top {
            display: flex; align-items: center; justify-content: space-between;
            padding: 1.25rem 1.5rem; border-bottom: 1px solid var(--outline);
        }
        header.top h1 { margin: 0; font-size: 1.6rem; letter-spacing: -0.02em; }
        button, .button {
            background: var(--surface-strong); color: var(--text-primary);
            border: 1px solid var(--outline); border-radius: 8px;
            padding: 0.55rem 1rem; font: inherit; cursor: pointer;
        }
        button.primary { background: var(--accent); border-color: var(--accent); }
        input, select {
            background: var(--surface); color: var(--text-primary);
            border: 1px solid var(--outline); border-radius: 8px;
            padding: 0.55rem 0.9rem; font: inherit;
        }
        .toast {
            position: fixed; right: 1.5rem; bottom: 1.5rem; z-index: 60;
            min-width: 260px; max-width: 360px; padding: 0.9rem 1.1rem;
            border-radius: 12px; background: var(--surface-strong);
            border-left: 4px solid #3b82f6; box-shadow: 0 18px 40px -20px #000;
        }
        .toast.success { border-left-color: #22c55e; }
        .toast.error { border-left-color: #ef4444; }
        .toast strong { display: block; margin-bottom: 0.25rem; }
        .popup-overlay {
            position: fixed; inset: 0; z-index: 50; background: rgba(0, 0, 0, 0.7);
            display: flex; align-items: center; justify-content: center; padding: 1rem;
        }
        .popup-content {
            background: var(--surface); border: 1px solid var(--outline);
            border-radius: 16px; max-width: 460px; width: 100%; padding: 1.5rem;
        }
        .popup-header { display: flex; justify-content: space-between; align-items: center; }
        .popup-header h3 { margin: 0; }
        .hidden { display: none !important; }
        .muted { color: var(--text-muted); }
    </style>
    """
)


# Shared client helpers: API calls, notification toast with a single
# cancellable dismiss timer, and the page-leave beacon.
CLIENT_SCRIPT = dedent(
    """
    <script>
        window.MovieWatcher = (function() {
            const viewId = __VIEW_ID_JSON__;
            let toastTimer = null;

            async function api(path, body) {
                const response = await fetch(path, {
                    method: body === undefined ? 'GET' : 'POST',
                    headers: { 'Content-Type': 'application/json' },
                    credentials: 'same-origin',
                    body: body === undefined ? undefined : JSON.stringify(body),
                });
                const payload = await response.json().catch(() => ({}));
                if (!response.ok) {
                    const detail = payload && payload.detail;
                    throw new Error(typeof detail === 'string' ? detail : 'Request failed');
                }
                return payload;
            }

            function showNotification(notification) {
                const toast = document.getElementById('toast');
                if (toastTimer !== null) {
                    clearTimeout(toastTimer);
                    toastTimer = null;
                }
                if (!notification) {
                    toast.classList.add('hidden');
                    return;
                }
                toast.className = 'toast ' + notification.kind;
                toast.querySelector('strong').textContent = notification.title;
                toast.querySelector('span').textContent = notification.message;
                toastTimer = setTimeout(() => {
                    toastTimer = null;
                    toast.classList.add('hidden');
                }, Math.max(0, notification.expiresIn * 1000));
            }

            window.addEventListener('pagehide', () => {
                if (toastTimer !== null) {
                    clearTimeout(toastTimer);
                    toastTimer = null;
                }
                const blob = new Blob([JSON.stringify({ view: viewId })], { type: 'application/json' });
                navigator.sendBeacon('/api/session/leave', blob);
            });

            return { api, showNotification };
        })();
    </script>
    """
)


TOAST_HTML = (
    '<div id="toast" class="toast hidden" role="status"><strong></strong><span></span></div>'
)


POPUP_COPY: dict[str, tuple[str, str]] = {
    "welcome": (
        "Welcome",
        "Browse the catalog, search by title or pick a category. "
        "Titles marked Locked need a password before they play.",
    ),
    "feature": (
        "Features",
        "Instant search, category filters, series with episode lists "
        "and playback straight in your browser.",
    ),
    "info": (
        "About",
        "Videos stream directly from their source. Nothing you watch is stored.",
    ),
}


LISTING_TEMPLATE = dedent(
    """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <meta name="theme-color" content="#e50914" />
    <title>__APP_NAME__</title>
    __BASE_STYLE__
    <style>
        .filters { display: flex; flex-wrap: wrap; gap: 0.75rem; margin-bottom: 1.5rem; }
        .filters input { flex: 1 1 260px; }
        .grid {
            display: grid; gap: 1.25rem;
            grid-template-columns: repeat(auto-fill, minmax(200px, 1fr));
        }
        .card {
            display: block; background: var(--surface); border: 1px solid var(--outline);
            border-radius: 12px; overflow: hidden; transition: transform 0.2s;
        }
        .card:hover { transform: scale(1.03); }
        .card .thumb { position: relative; aspect-ratio: 16 / 10; background: #0b0b0b; }
        .card img { width: 100%; height: 100%; object-fit: cover; display: block; }
        .card .badge {
            position: absolute; top: 0.5rem; right: 0.5rem; background: #ef4444;
            border-radius: 6px; padding: 0.15rem 0.5rem; font-size: 0.8rem;
        }
        .card .body { padding: 0.85rem 1rem; }
        .card h3 { margin: 0 0 0.3rem; font-size: 1.05rem; }
        .empty { text-align: center; padding: 3rem 0; }
    </style>
</head>
<body>
    <header class="top">
        <h1>__APP_NAME__</h1>
        <div>
            <button type="button" data-open-popup="feature">Features</button>
            <button type="button" data-open-popup="info">About</button>
        </div>
    </header>
    <main>
        <form class="filters" id="filters" method="get" action="/">
            <input type="search" name="q" id="search" placeholder="Search movies by title..." value="__QUERY__" />
            <select name="category" id="category">__CATEGORY_OPTIONS__</select>
            <a class="button" href="/" id="clear-filters">Clear Filters</a>
        </form>
        <p class="muted" id="counter">__SUMMARY__</p>
        <div class="grid" id="grid">__GRID__</div>
        <div class="empty muted __EMPTY_CLASS__" id="empty">__NO_RESULTS__</div>
    </main>
    __POPUPS__
    __TOAST__
    __CLIENT_SCRIPT__
    <script>
        (function() {
            const { api, showNotification } = window.MovieWatcher;
            const initial = __STATE_JSON__;
            const form = document.getElementById('filters');
            const search = document.getElementById('search');
            const category = document.getElementById('category');
            let pending = 0;

            function card(item) {
                const link = document.createElement('a');
                link.className = 'card';
                link.href = '/v/' + encodeURIComponent(item.id);
                const thumb = document.createElement('div');
                thumb.className = 'thumb';
                if (item.thumbnail) {
                    const img = document.createElement('img');
                    img.src = item.thumbnail;
                    img.alt = item.title;
                    thumb.appendChild(img);
                }
                if (item.locked) {
                    const badge = document.createElement('span');
                    badge.className = 'badge';
                    badge.textContent = 'Locked';
                    thumb.appendChild(badge);
                }
                const body = document.createElement('div');
                body.className = 'body';
                const title = document.createElement('h3');
                title.textContent = item.title;
                const meta = document.createElement('p');
                meta.className = 'muted';
                meta.textContent = item.category;
                body.append(title, meta);
                link.append(thumb, body);
                return link;
            }

            async function refresh() {
                const ticket = ++pending;
                const params = new URLSearchParams({ q: search.value, category: category.value });
                const result = await api('/api/catalog?' + params.toString());
                if (ticket !== pending) {
                    return;
                }
                const grid = document.getElementById('grid');
                grid.replaceChildren(...result.items.map(card));
                document.getElementById('counter').textContent = result.summary;
                const empty = document.getElementById('empty');
                empty.textContent = result.message || '';
                empty.classList.toggle('hidden', !result.message);
                history.replaceState(null, '', '/?' + params.toString());
                showNotification(result.notification);
            }

            form.addEventListener('submit', (event) => {
                event.preventDefault();
                refresh();
            });
            search.addEventListener('input', refresh);
            category.addEventListener('change', refresh);

            function setPopup(name, open) {
                document.getElementById('popup-' + name).classList.toggle('hidden', !open);
            }
            async function closePopup(name, target) {
                const state = await api('/api/session/popups/' + name + '/close', { target });
                setPopup(name, state.popups[name]);
            }
            document.querySelectorAll('[data-open-popup]').forEach((button) => {
                button.addEventListener('click', async () => {
                    const name = button.dataset.openPopup;
                    const state = await api('/api/session/popups/' + name + '/open', {});
                    setPopup(name, state.popups[name]);
                });
            });
            document.querySelectorAll('.popup-overlay').forEach((overlay) => {
                const name = overlay.dataset.popup;
                overlay.addEventListener('click', () => closePopup(name, 'backdrop'));
                overlay.querySelector('.popup-content').addEventListener('click', (event) => {
                    event.stopPropagation();
                });
                overlay.querySelector('.close-button').addEventListener('click', (event) => {
                    event.stopPropagation();
                    closePopup(name, 'button');
                });
            });

            showNotification(initial.notification);
        })();
    </script>
</body>
</html>
    """
)


PLAYER_TEMPLATE = dedent(
    """
<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="utf-8" />
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <meta name="theme-color" content="#e50914" />
    <title>__ITEM_TITLE__ · __APP_NAME__</title>
    __BASE_STYLE__
    <style>
        .password-prompt { max-width: 420px; margin: 3rem auto; }
        .password-prompt input { width: 100%; margin: 1rem 0; }
        .password-prompt .buttons { display: flex; justify-content: flex-end; gap: 0.75rem; }
        .error { color: #f87171; }
        .video-container { position: relative; background: #000; aspect-ratio: 16 / 9; }
        .video-container video { width: 100%; height: 100%; }
        .spinner {
            position: absolute; top: 50%; left: 50%; width: 50px; height: 50px;
            margin: -25px 0 0 -25px; border: 5px solid #f3f3f3;
            border-top-color: var(--accent); border-radius: 50%;
            animation: spin 1s linear infinite;
        }
        @keyframes spin { to { transform: rotate(360deg); } }
        .episodes { display: flex; flex-wrap: wrap; gap: 0.5rem; margin-top: 1rem; }
        .episodes button.active { background: var(--accent); border-color: var(--accent); }
        .category { display: inline-block; margin: 0.25rem 0 0.75rem; color: var(--text-muted); }
    </style>
</head>
<body>
    <header class="top">
        <h1>__APP_NAME__</h1>
        <a class="button" href="/" id="back">&larr; Back to Home</a>
    </header>
    <main>
        <section class="password-prompt hidden" id="prompt">
            <div class="popup-content">
                <h2>Password Required</h2>
                <p>This movie is locked. Please enter the password to continue.</p>
                <form id="password-form">
                    <input type="password" id="password" placeholder="Enter password" autocomplete="off" />
                    <p class="error hidden" id="password-error"></p>
                    <div class="buttons">
                        <a class="button" href="/">Cancel</a>
                        <button type="submit" class="primary">Submit</button>
                    </div>
                </form>
            </div>
        </section>
        <section class="hidden" id="player">
            <div class="video-container">
                <div class="spinner hidden" id="spinner"></div>
                <video id="video" controls autoplay playsinline></video>
            </div>
            <p class="error hidden" id="playback-error"></p>
            <div class="episodes" id="episodes"></div>
        </section>
        <section class="movie-info" id="info">
            <h2>__ITEM_TITLE__</h2>
            <div class="category">__ITEM_CATEGORY__</div>
            <p>__ITEM_DESCRIPTION__</p>
        </section>
    </main>
    __TOAST__
    __CLIENT_SCRIPT__
    <script>
        (function() {
            const { api, showNotification } = window.MovieWatcher;
            const video = document.getElementById('video');
            let state = __STATE_JSON__;

            function render(next) {
                state = next;
                const locked = state.state === 'selected_locked';
                document.getElementById('prompt').classList.toggle('hidden', !locked);
                const errorBox = document.getElementById('password-error');
                const wrong = state.lastError === 'wrong_password';
                errorBox.textContent = wrong ? state.errorMessage : '';
                errorBox.classList.toggle('hidden', !wrong);

                const playback = state.playback;
                document.getElementById('player').classList.toggle('hidden', !playback);
                if (playback) {
                    if (video.dataset.token !== String(playback.token)) {
                        video.dataset.token = String(playback.token);
                        video.src = playback.source;
                        video.load();
                    }
                    document.getElementById('spinner').classList.toggle('hidden', playback.status !== 'loading');
                    const failed = playback.status === 'failed';
                    const playbackError = document.getElementById('playback-error');
                    playbackError.textContent = failed ? state.errorMessage : '';
                    playbackError.classList.toggle('hidden', !failed);
                }
                renderEpisodes();
                showNotification(state.notification);
            }

            function renderEpisodes() {
                const container = document.getElementById('episodes');
                const episodes = (state.item && state.item.episodes) || [];
                container.replaceChildren(...episodes.map((episode) => {
                    const button = document.createElement('button');
                    button.type = 'button';
                    button.textContent = episode.title + (episode.duration ? ' · ' + episode.duration : '');
                    if (state.episode && String(state.episode.id) === String(episode.id)) {
                        button.classList.add('active');
                    }
                    button.addEventListener('click', async () => {
                        render(await api('/api/session/episode', { episodeId: episode.id }));
                    });
                    return button;
                }));
            }

            async function reportMedia(event) {
                const token = Number(video.dataset.token);
                if (!token) {
                    return;
                }
                render(await api('/api/session/media', { token, event }));
            }
            video.addEventListener('loadeddata', () => reportMedia('ready'));
            video.addEventListener('error', () => reportMedia('error'));

            document.getElementById('password-form').addEventListener('submit', async (event) => {
                event.preventDefault();
                const input = document.getElementById('password');
                render(await api('/api/session/password', { password: input.value }));
            });

            render(state);
        })();
    </script>
</body>
</html>
    """
)


def _fill(template: str, replacements: dict[str, str]) -> str:
    pattern = re.compile("|".join(re.escape(key) for key in replacements))
    return pattern.sub(lambda match: replacements[match.group(0)], template)


def _shared_fragments(view_id: str) -> dict[str, str]:
    return {
        "__BASE_STYLE__": BASE_STYLE,
        "__TOAST__": TOAST_HTML,
        "__CLIENT_SCRIPT__": CLIENT_SCRIPT.replace(
            "__VIEW_ID_JSON__", script_json(view_id)
        ),
    }


def render_item_card(item: CatalogItem) -> str:
    """Return the grid card markup for a single catalog item."""

    thumbnail = ""
    if item.thumbnail:
        thumbnail = (
            f'<img src="{escape(item.thumbnail)}" alt="{escape(item.title)}" loading="lazy" />'
        )
    badge = '<span class="badge">Locked</span>' if item.locked else ""
    return (
        f'<a class="card" href="/v/{quote(str(item.id), safe="")}">'
        f'<div class="thumb">{thumbnail}{badge}</div>'
        f'<div class="body"><h3>{escape(item.title)}</h3>'
        f'<p class="muted">{escape(item.category)}</p></div>'
        "</a>"
    )


def _render_popups(popups: dict[str, bool]) -> str:
    blocks: list[str] = []
    for name, (title, body) in POPUP_COPY.items():
        hidden = "" if popups.get(name) else " hidden"
        blocks.append(
            f'<div class="popup-overlay{hidden}" id="popup-{name}" data-popup="{name}">'
            '<div class="popup-content">'
            f'<div class="popup-header"><h3>{escape(title)}</h3>'
            '<button type="button" class="close-button" aria-label="Close">&times;</button>'
            "</div>"
            f'<div class="popup-body"><p>{escape(body)}</p></div>'
            "</div></div>"
        )
    return "\n".join(blocks)


def render_listing_page(
    settings: Settings,
    *,
    result: FilterResult,
    categories: Sequence[str],
    state: dict[str, Any],
    view_id: str,
) -> str:
    """Return the full HTML for the catalog listing at ``/``."""

    options = "".join(
        f'<option value="{escape(category)}"'
        f'{" selected" if category == result.criteria.category else ""}>'
        f"{escape(category)}</option>"
        for category in categories
    )
    replacements = {
        **_shared_fragments(view_id),
        "__APP_NAME__": escape(settings.app_name),
        "__CATEGORY_OPTIONS__": options,
        "__SUMMARY__": escape(result.summary()),
        "__EMPTY_CLASS__": "" if result.is_empty else "hidden",
        "__NO_RESULTS__": escape(NO_RESULTS_MESSAGE),
        "__POPUPS__": _render_popups(state.get("popups") or {}),
        "__GRID__": "".join(render_item_card(item) for item in result.items),
        "__STATE_JSON__": script_json(state),
        "__QUERY__": escape(result.criteria.query),
    }
    return _fill(LISTING_TEMPLATE, replacements)


def render_player_page(
    settings: Settings,
    *,
    item: CatalogItem,
    state: dict[str, Any],
    view_id: str,
) -> str:
    """Return the full HTML for the player view at ``/v/{item_id}``."""

    replacements = {
        **_shared_fragments(view_id),
        "__APP_NAME__": escape(settings.app_name),
        "__ITEM_TITLE__": escape(item.title),
        "__ITEM_CATEGORY__": escape(item.category),
        "__ITEM_DESCRIPTION__": escape(item.description or ""),
        "__STATE_JSON__": script_json(state),
    }
    return _fill(PLAYER_TEMPLATE, replacements)
