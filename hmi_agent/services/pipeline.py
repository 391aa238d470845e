# hmi_agent/services/pipeline.py

import logging
import os
import re
import time
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Iterator, List, Optional

from hmi_agent.config import Settings
from hmi_agent.errors import ScreenAnalysisError, SessionError
from hmi_agent.schemas import (
    GenerationResult,
    GenerationSummary,
    Screen,
    ScreenImage,
    ScreenSpecification,
    WorkflowDiagram,
)
from hmi_agent.services.content import DocumentContext
from hmi_agent.services.identifier import identify_screens, screens_from_sections
from hmi_agent.services.keywords import extract_keywords
from hmi_agent.services.parser import read_document
from hmi_agent.services.renderer import render_combined, render_comprehensive, render_screen
from hmi_agent.services.segmenter import segment
from hmi_agent.services.session import SessionContext
from hmi_agent.services.spec_generator import ScreenSpecGenerator
from hmi_agent.services.themes import select_theme
from hmi_agent.services.values import ValueSource
from hmi_agent.services.workflow import compose_workflow

logger = logging.getLogger(__name__)

_UNSAFE = re.compile(r"[^A-Za-z0-9_-]+")


def safe_name(value: str) -> str:
    return _UNSAFE.sub("_", value).strip("_") or "screen"


@contextmanager
def exclusive(session: SessionContext) -> Iterator[SessionContext]:
    """Hold the session lock for one stage; a second caller gets a busy error."""
    if not session.lock.acquire(blocking=False):
        raise SessionError(f"Session {session.session_id} is busy", session_id=session.session_id, busy=True)
    try:
        yield session
    finally:
        session.lock.release()


class HMIPipeline:
    """
    Two-stage generator. Stage one reads the document and composes the
    workflow; stage two writes one PNG per screen plus the combined layouts.
    Model failures degrade to template paths, never to a failed request.
    """

    def __init__(self, settings: Settings, llm: Optional[Any] = None) -> None:
        self.settings = settings
        self.llm = llm

    def _values(self, offset: int = 0) -> ValueSource:
        seed = self.settings.value_seed
        return ValueSource(None if seed is None else seed + offset)

    # --------------------------------------------
    # Stage 1: document → screens → workflow
    # --------------------------------------------
    def run_workflow_stage(self, session: SessionContext) -> WorkflowDiagram:
        with exclusive(session):
            session.status = "analyzing"
            session.progress("upload", "Reading FDS document")
            text = read_document(session.document_path)
            profile = extract_keywords(text)
            sections = segment(text)
            logger.info("Document: %d chars, %d sections, system type %s", len(text), len(sections), profile.primary_type)

            session.progress("analysis", "Identifying HMI screens")
            identification = None
            if self.llm is not None:
                try:
                    identification = identify_screens(sections, text, self.llm)
                except ScreenAnalysisError as e:
                    logger.warning("%s; deriving screens from headings", e)
            if identification is None:
                identification = screens_from_sections(sections)
            names = [s.screen_name for s in identification.screen_list]
            session.progress("analysis", f"Identified {len(names)} screens: {', '.join(names)}")

            context = DocumentContext(document_text=text, profile=profile, screen_names=names)
            session.progress("workflow", "Composing navigation workflow")
            workflow = compose_workflow(identification.screen_list, context, self.llm)
            session.progress("workflow", f"Workflow ready with {len(workflow.navigation_flow.transitions)} transitions")

            session.context = context
            session.identification = identification
            session.workflow = workflow
            session.status = "workflow_ready"
            return workflow

    # --------------------------------------------
    # Stage 2: per-screen specs and images
    # --------------------------------------------
    def _build_screen(
        self,
        session: SessionContext,
        generator: ScreenSpecGenerator,
        screen: Screen,
        index: int,
        total: int,
        stamp: int,
    ) -> ScreenImage:
        session.progress("screen-generation", f"Generating screen {index + 1}/{total}: {screen.screen_name}")
        entry = ScreenImage(
            screen_name=screen.screen_name,
            screen_id=screen.screen_id,
            screen_purpose=screen.screen_purpose,
        )
        if session.cancelled:
            entry.error = "cancelled"
            return entry
        try:
            spec = generator.generate(screen)
            entry.specification = spec
            entry.screen_purpose = entry.screen_purpose or spec.screen_purpose
            if session.cancelled:
                entry.error = "cancelled"
                return entry
            profile = session.context.profile
            image = render_screen(spec, self._values(index), terms=profile.components, operations=profile.operations)
            filename = f"screen_{stamp}_{index + 1:02d}_{safe_name(screen.screen_id)}.png"
            entry.image_path = self._save(session, image, filename)
            entry.image_url = f"/outputs/{filename}"
        except Exception as e:
            logger.exception("Screen %s failed", screen.screen_name)
            entry.error = str(e) or e.__class__.__name__
        return entry

    def _save(self, session: SessionContext, image, filename: str) -> str:
        os.makedirs(self.settings.output_dir, exist_ok=True)
        path = os.path.join(self.settings.output_dir, filename)
        image.save(path, "PNG")
        session.written_files.append(path)
        return path

    def _discard_outputs(self, session: SessionContext) -> None:
        for path in session.written_files:
            try:
                os.remove(path)
            except FileNotFoundError:
                pass
        session.written_files.clear()

    def _combined_entries(self, session: SessionContext, images: List[ScreenImage], stamp: int) -> List[ScreenImage]:
        context = session.context
        workflow = session.workflow
        theme = select_theme(context.system_type)
        entries: List[ScreenImage] = []

        filename = f"workflow_driven_hmi_layout_{stamp}.png"
        entry = ScreenImage(
            screen_name="Workflow-Driven HMI Layout",
            screen_id="workflow_layout",
            screen_type="workflow_comprehensive",
            screen_purpose="All screens with navigation transitions",
        )
        try:
            image = render_combined(images, workflow.navigation_flow.transitions, workflow.system_overview, theme,
                                    self._values(len(images)))
            entry.image_path = self._save(session, image, filename)
            entry.image_url = f"/outputs/{filename}"
        except Exception as e:
            logger.exception("Combined layout failed")
            entry.error = str(e) or e.__class__.__name__
        entries.append(entry)

        specs: List[ScreenSpecification] = [i.specification for i in images if i.specification is not None and not i.error]
        filename = f"comprehensive_hmi_layout_{stamp}.png"
        entry = ScreenImage(
            screen_name="Comprehensive HMI Layout",
            screen_id="comprehensive_layout",
            screen_type="comprehensive",
            screen_purpose="Overview grid of all screens",
        )
        try:
            image = render_comprehensive(specs, context.system_type, theme, self._values(len(images) + 1))
            entry.image_path = self._save(session, image, filename)
            entry.image_url = f"/outputs/{filename}"
        except Exception as e:
            logger.exception("Comprehensive layout failed")
            entry.error = str(e) or e.__class__.__name__
        entries.append(entry)
        return entries

    def run_screen_stage(self, session: SessionContext) -> GenerationResult:
        if session.workflow is None or session.identification is None or session.context is None:
            raise SessionError(
                f"Workflow has not been generated for session {session.session_id}", session_id=session.session_id
            )

        with exclusive(session):
            session.status = "generating"
            screens = session.identification.screen_list
            generator = ScreenSpecGenerator(session.context, self.llm)
            stamp = int(time.time() * 1000)
            images: List[ScreenImage] = []
            cancelled = False

            with ThreadPoolExecutor(max_workers=self.settings.render_workers) as pool:
                futures = [
                    pool.submit(self._build_screen, session, generator, screen, i, len(screens), stamp)
                    for i, screen in enumerate(screens)
                ]
                for future in futures:
                    if session.cancelled:
                        cancelled = True
                        for pending in futures:
                            pending.cancel()
                        break
                    images.append(future.result())

            if cancelled or session.cancelled:
                self._discard_outputs(session)
                session.status = "cancelled"
                session.progress("screen-generation", "Generation cancelled, outputs removed")
                return GenerationResult(
                    screen_analysis=session.identification,
                    workflow_diagram=session.workflow,
                    summary=self._summary(screens, [], "cancelled"),
                )

            combined = self._combined_entries(session, images, stamp)
            status = self._status(images)
            session.status = status
            session.progress("screen-generation", f"Generated {len(images)} screens ({status})")
            return GenerationResult(
                screen_analysis=session.identification,
                workflow_diagram=session.workflow,
                screen_images=images + combined,
                summary=self._summary(screens, images + combined, status),
            )

    @staticmethod
    def _status(images: List[ScreenImage]) -> str:
        failed = sum(1 for i in images if i.error)
        if images and failed == len(images):
            return "error"
        if failed:
            return "partial_success"
        return "completed"

    @staticmethod
    def _summary(screens: List[Screen], entries: List[ScreenImage], status: str) -> GenerationSummary:
        individual = [e for e in entries if e.screen_type == "individual"]
        return GenerationSummary(
            total_screens=len(screens),
            individual_screens=len(individual),
            successful_screens=sum(1 for e in individual if not e.error),
            failed_screens=sum(1 for e in individual if e.error),
            layout_types=sorted({e.screen_type for e in entries if not e.error}),
            generated_at=datetime.now().isoformat(),
            status=status,
        )
