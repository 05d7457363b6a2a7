"""
docpipe - OCR Session Manager

Owns the lifecycle of one recognition session: the language set, engine
start-up, per-page recognition with failure isolation, and teardown.
A session belongs to exactly one job run and is terminated exactly once.
"""

import logging
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum, auto
from typing import Protocol

import numpy as np

from docpipe.utils.exceptions import InvalidOptionsError

logger = logging.getLogger(__name__)

OCR_ERROR_MARKER = "[OCR Error: {error}]"

# Language codes accepted by the pipeline, mapped to rapidocr model names
LANGUAGE_MODELS: dict[str, str] = {
    "eng": "en",
    "chi_sim": "ch",
    "chi_tra": "chinese_cht",
    "jpn": "japan",
    "kor": "korean",
    "ara": "arabic",
    "spa": "latin",
    "fra": "latin",
    "deu": "latin",
    "por": "latin",
    # rapidocr model names are accepted as-is
    "latin": "latin",
    "en": "en",
    "ch": "ch",
    "chinese_cht": "chinese_cht",
    "japan": "japan",
    "korean": "korean",
    "arabic": "arabic",
}

LANGUAGE_NAMES: dict[str, str] = {
    "eng": "English",
    "chi_sim": "Chinese (Simplified)",
    "chi_tra": "Chinese (Traditional)",
    "jpn": "Japanese",
    "kor": "Korean",
    "spa": "Spanish",
    "fra": "French",
    "deu": "German",
    "por": "Portuguese",
    "ara": "Arabic",
}


class RecognitionEngine(Protocol):
    """What the session needs from a recognition backend."""

    def recognize(self, pixels: np.ndarray) -> str: ...

    def close(self) -> None: ...


EngineFactory = Callable[[Sequence[str]], RecognitionEngine]


def validate_languages(languages: Sequence[str]) -> list[str]:
    """Check a language list and return it normalized (lower case, no repeats).

    Raises:
        InvalidOptionsError: If the list is empty or holds an unknown code.
    """
    normalized: list[str] = []
    for code in languages:
        code = str(code).strip().lower()
        if code not in LANGUAGE_MODELS:
            raise InvalidOptionsError(f"Unsupported OCR language '{code}'.", option="languages")
        if code not in normalized:
            normalized.append(code)
    if not normalized:
        raise InvalidOptionsError("At least one OCR language is required.", option="languages")
    return normalized


def recognition_model_for(languages: Sequence[str]) -> str:
    """Pick the single rapidocr recognition model for a language list.

    rapidocr loads one recognition model per engine. The latin model also
    reads English, so an English + European mix resolves to latin; any
    other mix uses the first language's model.
    """
    models = [LANGUAGE_MODELS[code] for code in validate_languages(languages)]
    if "latin" in models and set(models) <= {"latin", "en"}:
        return "latin"

    chosen = models[0]
    ignored = [m for m in models if m != chosen]
    if ignored:
        logger.warning(
            "OCR engine supports one script per run, using '%s' and ignoring %s",
            chosen,
            ", ".join(sorted(set(ignored))),
        )
    return chosen


class RapidOCREngine:
    """Recognition backend over rapidocr (PP-OCR ONNX models)."""

    def __init__(self, languages: Sequence[str], text_score: float = 0.3) -> None:
        from rapidocr import LangRec, RapidOCR

        lang_map = {
            "latin": LangRec.LATIN,
            "en": LangRec.EN,
            "ch": LangRec.CH,
            "chinese_cht": LangRec.CHINESE_CHT,
            "japan": LangRec.JAPAN,
            "korean": LangRec.KOREAN,
            "arabic": LangRec.ARABIC,
        }
        model = recognition_model_for(languages)
        params = {
            "Global.text_score": text_score,
            "Rec.lang_type": lang_map[model],
        }
        logger.info("Loading OCR models (%s)", model)
        self._rapid = RapidOCR(params=params)

    def recognize(self, pixels: np.ndarray) -> str:
        # RGBA -> BGR, the channel order the ONNX pipeline expects
        bgr = np.ascontiguousarray(pixels[..., 2::-1])
        result = self._rapid(bgr)
        return "\n".join(result.txts or [])

    def close(self) -> None:
        self._rapid = None


class SessionState(Enum):
    UNINITIALIZED = auto()
    READY = auto()
    RECOGNIZING = auto()
    TERMINATED = auto()


@dataclass
class PageText:
    """Recognized text of one page (1-based page number)."""

    page_number: int
    text: str
    error: str | None = None

    @property
    def failed(self) -> bool:
        return self.error is not None

    def __str__(self) -> str:
        return f"--- Page {self.page_number} ---\n{self.text}"


class OCRSession:
    """One recognition session.

    UNINITIALIZED -> READY -> (RECOGNIZING -> READY)* -> TERMINATED
    """

    def __init__(self, engine_factory: EngineFactory = RapidOCREngine) -> None:
        self._engine_factory = engine_factory
        self._engine: RecognitionEngine | None = None
        self.languages: list[str] = []
        self.state = SessionState.UNINITIALIZED

    def start(self, languages: Sequence[str]) -> None:
        """Create the engine for *languages*; the only way into READY."""
        if self.state is not SessionState.UNINITIALIZED:
            raise RuntimeError(f"Cannot start an OCR session in state {self.state.name}")

        self.languages = validate_languages(languages)
        self._engine = self._engine_factory(self.languages)
        self.state = SessionState.READY
        logger.info("OCR session started (%s)", "+".join(self.languages))

    def recognize(self, pixels: np.ndarray) -> str:
        """Recognize one page image. Engine errors propagate."""
        if self.state is not SessionState.READY or self._engine is None:
            raise RuntimeError(f"OCR session is not ready (state {self.state.name})")

        self.state = SessionState.RECOGNIZING
        try:
            return self._engine.recognize(pixels)
        finally:
            self.state = SessionState.READY

    def recognize_page(
        self, page_number: int, render: Callable[[], np.ndarray]
    ) -> PageText:
        """Render and recognize one page, isolating any failure.

        Args:
            page_number: 1-based page number, used in the result.
            render: Produces the page's RGBA buffer. Called once.

        Returns:
            PageText. On failure its text is the inline error marker.
        """
        try:
            text = self.recognize(render())
        except Exception as e:
            # Per-page failures never abort the remaining pages
            logger.warning("OCR failed on page %d: %s", page_number, e)
            message = str(e) or type(e).__name__
            return PageText(page_number, OCR_ERROR_MARKER.format(error=message), error=message)

        logger.info("OCR completed for page %d", page_number)
        return PageText(page_number, text)

    def terminate(self) -> None:
        """Release the engine. Calling it again has no effect."""
        if self.state is SessionState.TERMINATED:
            return
        engine, self._engine = self._engine, None
        self.state = SessionState.TERMINATED
        if engine is not None:
            engine.close()
            logger.info("OCR session terminated")


@contextmanager
def ocr_session(
    languages: Sequence[str], engine_factory: EngineFactory = RapidOCREngine
) -> Iterator[OCRSession]:
    """Start a session and terminate it on every exit path."""
    session = OCRSession(engine_factory)
    try:
        session.start(languages)
        yield session
    finally:
        session.terminate()
