"""Client flow controller: splash -> upload -> filter select -> result.

The flow is linear.  A user picks a photo, picks a filter (a catalog theme
or the built-in "Baby Transform" filter) and lands on the result screen,
which issues exactly one backend request:

- ``baby`` filter: upload the photo to ``POST /api/baby-transform``
- any other theme: ``POST /api/generate/{theme_id}``

Theme generation does not need a photo: :meth:`FlowController.generate_theme`
goes straight from the upload screen to the result screen with a catalog
theme.  Only the ``baby`` filter requires a selected photo.

While the request is in flight a :class:`ProgressSimulator` may animate a
fixed list of cosmetic steps.  The animation runs on its own timer and has
no influence on the request or its outcome.

Transitions
-----------
==============  =================================================
Screen          Allowed next screens
==============  =================================================
splash          upload
upload          filter_select, result (theme only)
filter_select   upload (back), result
result          filter_select (back), upload (back without photo, home)
==============  =================================================

Anything else raises :class:`FlowError`.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterator
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from photomorph.core.config import config
from photomorph.core.generation import DEFAULT_TRANSFORM_INSTRUCTION
from photomorph.core.models import Category, Theme
from photomorph.ui.client import ApiError

logger = logging.getLogger(__name__)

FAILURE_NOTICE = "Failed to transform your image. Please try again."


class Screen(str, Enum):
    SPLASH = "splash"
    UPLOAD = "upload"
    FILTER_SELECT = "filter_select"
    RESULT = "result"


_TRANSITIONS: dict[Screen, set[Screen]] = {
    Screen.SPLASH: {Screen.UPLOAD},
    Screen.UPLOAD: {Screen.FILTER_SELECT, Screen.RESULT},
    Screen.FILTER_SELECT: {Screen.UPLOAD, Screen.RESULT},
    Screen.RESULT: {Screen.FILTER_SELECT, Screen.UPLOAD},
}

_BACK = {
    Screen.FILTER_SELECT: Screen.UPLOAD,
    Screen.RESULT: Screen.FILTER_SELECT,
}


class FlowError(Exception):
    """An action was attempted on a screen that does not allow it."""


def baby_filter() -> Theme:
    """The built-in filter that routes to the photo transform endpoint."""
    return Theme(
        id=-1,
        name="Baby Transform",
        description="Transform into a cute baby version",
        category=Category.BABY,
        prompt=DEFAULT_TRANSFORM_INSTRUCTION,
    )


# ---------------------------------------------------------------------------
# Cosmetic progress.
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ProgressStep:
    percent: int
    text: str


PHOTO_PROGRESS_STEPS = (
    ProgressStep(20, "Analyzing your photo..."),
    ProgressStep(40, "Preparing AI transformation..."),
    ProgressStep(60, "Applying selected filter..."),
    ProgressStep(80, "Enhancing image quality..."),
    ProgressStep(100, "Finalizing your creation..."),
)

THEME_PROGRESS_STEPS = (
    ProgressStep(20, "Analyzing theme parameters..."),
    ProgressStep(40, "Generating AI prompt..."),
    ProgressStep(60, "Creating image..."),
    ProgressStep(80, "Applying theme filters..."),
    ProgressStep(100, "Finalizing image..."),
)

INITIAL_STEP = ProgressStep(0, "Initializing AI model...")
COMPLETE_STEP = ProgressStep(100, "Transformation complete!")


class ProgressSimulator:
    """Fake progress shown while a request is pending.

    Steps are emitted on a background timer every ``interval`` seconds until
    the list is exhausted or :meth:`stop` is called.  ``on_step`` receives
    each :class:`ProgressStep`.
    """

    def __init__(
        self,
        steps: tuple[ProgressStep, ...] = PHOTO_PROGRESS_STEPS,
        interval: float = 1.5,
        on_step: Callable[[ProgressStep], None] | None = None,
    ):
        self.steps = steps
        self.interval = interval
        self.on_step = on_step
        self.current = INITIAL_STEP
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None

    def __iter__(self) -> Iterator[ProgressStep]:
        return iter(self.steps)

    def _emit(self, step: ProgressStep) -> None:
        self.current = step
        if self.on_step is not None:
            self.on_step(step)

    def _run(self) -> None:
        for step in self.steps:
            if self._stop.wait(self.interval):
                return
            self._emit(step)

    def start(self) -> None:
        self._stop.clear()
        self._emit(INITIAL_STEP)
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

    def stop(self, final: ProgressStep | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None
        if final is not None:
            self._emit(final)


# ---------------------------------------------------------------------------
# Flow controller.
# ---------------------------------------------------------------------------


class FlowBackend(Protocol):
    """Requests the flow needs; implemented by :class:`~photomorph.ui.client.ApiClient`."""

    def list_themes(self, category: Category | str | None = None) -> list[Theme]: ...

    def generate(self, theme_id: int, user_id: int | None = None) -> dict: ...

    def baby_transform(
        self,
        photo: bytes,
        content_type: str,
        filename: str = "photo.jpg",
        user_id: int | None = None,
    ) -> dict: ...


@dataclass(frozen=True)
class SelectedPhoto:
    data: bytes
    content_type: str
    filename: str = "photo.jpg"


class FlowController:
    """Drives the screen sequence and the single request on the result screen.

    Attributes:
        screen: Current screen
        photo: Photo picked on the upload screen
        theme: Filter picked on the filter screen
        result_url: Image URL returned by the last successful request
        error: Failure notice from the last failed request
        response: Raw JSON of the last successful request
    """

    def __init__(
        self,
        backend: FlowBackend,
        *,
        user_id: int | None = None,
        on_progress: Callable[[ProgressStep], None] | None = None,
        progress_interval: float | None = None,
    ):
        self.backend = backend
        self.user_id = user_id
        self.on_progress = on_progress
        self.progress_interval = (
            config.progress_step_seconds if progress_interval is None else progress_interval
        )
        self.screen = Screen.SPLASH
        self.photo: SelectedPhoto | None = None
        self.theme: Theme | None = None
        self.result_url: str | None = None
        self.error: str | None = None
        self.response: dict | None = None
        self.progress: ProgressSimulator | None = None

    # -- Navigation ---------------------------------------------------------

    def _go(self, target: Screen) -> None:
        if target not in _TRANSITIONS[self.screen]:
            raise FlowError(f"Cannot move from {self.screen.value} to {target.value}")
        logger.debug(f"Flow: {self.screen.value} -> {target.value}")
        self.screen = target

    def _require(self, screen: Screen, action: str) -> None:
        if self.screen is not screen:
            raise FlowError(f"Cannot {action} on the {self.screen.value} screen")

    def finish_splash(self) -> None:
        self._go(Screen.UPLOAD)

    def select_photo(self, data: bytes, content_type: str, filename: str = "photo.jpg") -> None:
        self._require(Screen.UPLOAD, "select a photo")
        if not data:
            raise FlowError("Selected photo is empty")
        self.photo = SelectedPhoto(data=data, content_type=content_type, filename=filename)
        self._go(Screen.FILTER_SELECT)

    def available_filters(self, category: Category | None = None) -> list[Theme]:
        """Filters offered on the filter screen.

        The ``baby`` category offers only the built-in baby filter, another
        category only its catalog themes, and no category offers the baby
        filter followed by every active catalog theme.
        """
        if category is Category.BABY:
            return [baby_filter()]
        themes = self.backend.list_themes(category)
        if category is None:
            return [baby_filter(), *themes]
        return themes

    def choose_filter(self, theme: Theme) -> str | None:
        """Pick a filter, move to the result screen and run the request.

        Returns:
            The resulting image URL, or None if the request failed
        """
        self._require(Screen.FILTER_SELECT, "choose a filter")
        self.theme = theme
        self._go(Screen.RESULT)
        return self.submit()

    def generate_theme(self, theme: Theme) -> str | None:
        """Generate from a catalog theme without uploading a photo.

        Returns:
            The resulting image URL, or None if the request failed

        Raises:
            FlowError: If called off the upload screen or with the baby filter
        """
        self._require(Screen.UPLOAD, "generate from a theme")
        if theme.category is Category.BABY:
            raise FlowError("The baby filter needs a photo")
        self.photo = None
        self.theme = theme
        self._go(Screen.RESULT)
        return self.submit()

    def back(self) -> None:
        if self.screen not in _BACK:
            raise FlowError(f"Cannot go back from the {self.screen.value} screen")
        if self.screen is Screen.RESULT and self.photo is None:
            self._go(Screen.UPLOAD)
            return
        self._go(_BACK[self.screen])

    def home(self) -> None:
        """Start over from the upload screen with a clean slate."""
        self._require(Screen.RESULT, "go home")
        self._go(Screen.UPLOAD)
        self.photo = None
        self.theme = None
        self._clear_result()

    # -- Requests -----------------------------------------------------------

    def _clear_result(self) -> None:
        self.result_url = None
        self.error = None
        self.response = None

    def submit(self) -> str | None:
        """Issue the one request for the selected filter.

        On failure the generic notice is stored in :attr:`error` and the flow
        stays on the result screen so the user can :meth:`retry`.
        """
        self._require(Screen.RESULT, "submit")
        if self.theme is None:
            raise FlowError("A filter is required")
        is_photo_flow = self.theme.category is Category.BABY
        if is_photo_flow and self.photo is None:
            raise FlowError("The baby filter needs a photo")

        self._clear_result()
        steps = PHOTO_PROGRESS_STEPS if is_photo_flow else THEME_PROGRESS_STEPS
        self.progress = None
        if self.on_progress is not None:
            self.progress = ProgressSimulator(steps, self.progress_interval, self.on_progress)
            self.progress.start()

        succeeded = False
        try:
            if is_photo_flow:
                response = self.backend.baby_transform(
                    self.photo.data,
                    self.photo.content_type,
                    self.photo.filename,
                    self.user_id,
                )
                url = response["transformed_image_url"]
            else:
                response = self.backend.generate(self.theme.id, self.user_id)
                url = response["image_url"]
            succeeded = True
        except (ApiError, KeyError) as e:
            logger.warning(f"Generation request failed: {e}")
            self.error = FAILURE_NOTICE
            return None
        finally:
            if self.progress is not None:
                self.progress.stop(COMPLETE_STEP if succeeded else None)

        self.response = response
        self.result_url = url
        return url

    def retry(self) -> str | None:
        """Re-issue the same request after a failure."""
        self._require(Screen.RESULT, "retry")
        if self.error is None:
            raise FlowError("Nothing to retry")
        return self.submit()
