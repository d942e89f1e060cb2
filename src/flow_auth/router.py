"""
FastAPI routes for the login flow: login, callback (HTML and JSON views),
session check, focus re-validation, /me and logout.

The persistent store is request.session (Starlette SessionMiddleware must be
installed); the tab-scoped store and the AuthSession come from the TabRegistry,
keyed by the tab cookie.
"""

import html
import logging
from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse

from .backend import BackendClient
from .callback import CallbackOutcome, CallbackParams, CallbackState
from .config import AuthSettings
from .context import AuthContext
from .redirects import is_local_path
from .storage import MappingStore
from .tabs import TAB_COOKIE_NAME, PendingNavigation, TabRegistry

logger = logging.getLogger(__name__)

LOGIN_START_PATH = "/auth/login"


@dataclass
class FlowRequest:
    """An AuthContext bound to one request, plus where it wants to navigate."""

    context: AuthContext
    navigation: PendingNavigation
    tab_id: str

    def finish(self, response: Response) -> Response:
        _set_tab_cookie(response, self.tab_id)
        return response

    def redirect(self, fallback: str) -> Response:
        return self.finish(RedirectResponse(url=self.navigation.url or fallback, status_code=302))


def _set_tab_cookie(response: Response, tab_id: str) -> None:
    # no max_age: the tab store must not outlive the browser session
    response.set_cookie(TAB_COOKIE_NAME, tab_id, httponly=True, samesite="lax")


def _render_login_page(start_url: str, settings: AuthSettings) -> str:
    provider = html.escape(settings.provider_name)
    href = html.escape(start_url, quote=True)
    return (
        "<!doctype html><html><head><meta charset=\"utf-8\">"
        f"<title>Sign in</title></head><body><h1>Sign in</h1>"
        f"<p>Sign in with your {provider} account to continue.</p>"
        f'<p><a class="button" href="{href}">Continue with {provider}</a></p></body></html>'
    )


def _render_callback_page(outcome: CallbackOutcome, settings: AuthSettings) -> str:
    """Minimal status page; success pages refresh to the destination after the delay."""
    provider = html.escape(settings.provider_name)
    message = html.escape(outcome.message)
    head = ""
    if outcome.succeeded and outcome.redirect_to:
        target = html.escape(outcome.redirect_to, quote=True)
        head = f'<meta http-equiv="refresh" content="{outcome.delay:g};url={target}">'
        body = (
            f'<p class="success">{message}</p>'
            f'<p>Redirecting you... If nothing happens, <a href="{target}">click here</a>.</p>'
        )
    else:
        login = html.escape(settings.login_path, quote=True)
        body = f'<p class="error">{message}</p><p><a href="{login}">Return to login</a></p>'
    if outcome.debug:
        rows = "".join(
            f"<tr><th>{html.escape(str(k))}</th><td>{html.escape(str(v))}</td></tr>"
            for k, v in outcome.debug.items()
        )
        body += f"<details><summary>Debug Information</summary><table>{rows}</table></details>"
    return (
        "<!doctype html><html><head><meta charset=\"utf-8\">"
        f"<title>{provider} Authentication</title>{head}</head>"
        f"<body><h1>{provider} Authentication</h1>{body}</body></html>"
    )


class AuthRoutes:
    """Builds the auth APIRouter and the dependencies protected routes use."""

    def __init__(
        self,
        settings: AuthSettings,
        backend: Optional[BackendClient] = None,
        registry: Optional[TabRegistry] = None,
    ):
        self.settings = settings
        self.backend = backend or BackendClient(settings)
        self.registry = registry or TabRegistry()
        self.router = self._build_router()

    async def flow(self, request: Request, response: Response) -> FlowRequest:
        """Dependency: the AuthContext for the calling tab."""
        tab_id, tab = self.registry.get(request.cookies.get(TAB_COOKIE_NAME))
        _set_tab_cookie(response, tab_id)
        navigation = PendingNavigation()
        context = AuthContext(
            settings=self.settings,
            session=tab.session,
            store=MappingStore(request.session),
            tab_store=tab.store,
            backend=self.backend,
            navigator=navigation,
        )
        return FlowRequest(context=context, navigation=navigation, tab_id=tab_id)

    async def require_user(self, request: Request, response: Response) -> dict:
        """Dependency: verify on entry and return the user, or 401."""
        flow = await self.flow(request, response)
        await flow.context.verifier.on_mount(request.url.path)
        session = flow.context.session
        if not session.is_authenticated:
            logger.debug("Rejecting unauthenticated request to %s", request.url.path)
            raise HTTPException(status_code=401, detail="Not authenticated")
        return session.user

    async def _run_callback(self, request: Request, flow: FlowRequest) -> CallbackOutcome:
        params = CallbackParams.from_query(request.query_params)
        processor = flow.context.callback_processor()
        debug = processor.debug_info(params, request.url.path) if self.settings.debug else None
        outcome = await processor.process(params)
        outcome.debug = debug
        return outcome

    def _build_router(self) -> APIRouter:
        settings = self.settings
        router = APIRouter()

        @router.get(settings.login_path, name="login", response_class=HTMLResponse)
        async def login_page(redirect: Optional[str] = None, flow: FlowRequest = Depends(self.flow)):
            """Login view: a single button that starts the provider round trip."""
            start = LOGIN_START_PATH
            if is_local_path(redirect):
                start = f"{start}?{urlencode({'redirect': redirect})}"
            return flow.finish(HTMLResponse(_render_login_page(start, settings)))

        @router.get(LOGIN_START_PATH, name="login_start")
        async def login_start(redirect: Optional[str] = None, flow: FlowRequest = Depends(self.flow)):
            """Send the browser to the backend's authorization endpoint."""
            flow.context.login(redirect if is_local_path(redirect) else None)
            return flow.redirect(settings.login_path)

        @router.get(settings.callback_path, name="auth_callback")
        async def auth_callback(request: Request, flow: FlowRequest = Depends(self.flow)):
            """Process the provider's redirect and render the outcome."""
            outcome = await self._run_callback(request, flow)
            if outcome.state is CallbackState.ALREADY_PROCESSED:
                return flow.redirect(settings.default_redirect)
            status_code = 200 if outcome.succeeded else 400
            return flow.finish(
                HTMLResponse(_render_callback_page(outcome, settings), status_code=status_code)
            )

        @router.get("/api/auth/callback")
        async def auth_callback_json(request: Request, flow: FlowRequest = Depends(self.flow)):
            """Same state machine as the callback page, answered as JSON."""
            outcome = await self._run_callback(request, flow)
            status_code = 200 if outcome.succeeded else 400
            return flow.finish(JSONResponse(outcome.as_dict(), status_code=status_code))

        @router.get("/api/auth/session")
        async def auth_session(path: str = Query("/"), flow: FlowRequest = Depends(self.flow)):
            """Mount check for the view at path; returns the session snapshot."""
            await flow.context.verifier.on_mount(path)
            return flow.context.session.state.as_dict()

        @router.post("/api/auth/focus")
        async def auth_focus(path: str = Query("/"), flow: FlowRequest = Depends(self.flow)):
            """Focus regained: re-validate unless loading, debounced or on the callback view."""
            revalidated = await flow.context.verifier.on_focus(path)
            return {"revalidated": revalidated, "session": flow.context.session.state.as_dict()}

        @router.get("/me")
        async def me(user: dict = Depends(self.require_user)):
            return {"user": user}

        @router.api_route("/logout", methods=["GET", "POST"])
        async def logout(flow: FlowRequest = Depends(self.flow)):
            """Tear the session down locally and on the backend, then go to login."""
            await flow.context.logout()
            return flow.redirect(settings.login_path)

        return router
