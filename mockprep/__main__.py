#!/usr/bin/env python3
"""
Main entry point for the MockPrep interview practice app.
Allows running the package with: python -m mockprep

    python -m mockprep --cv=resume.pdf --name="Ada Lovelace"
    python -m mockprep --jd=jd.pdf
    python -m mockprep --title="Senior Designer" --company=Acme --jd=jd.pdf --no-extract
    python -m mockprep --role=<role_id> --stage=hiring-manager --voice
    python -m mockprep --role=<role_id> --realtime
"""
import sys
import asyncio
import logging
from typing import Dict, Optional

from .config import get_config, Config
from .errors import InterviewError
from .infrastructure.data import InterviewStore, JsonFileStore, next_stage
from .infrastructure.documents import DocumentConverter
from .infrastructure.llm import VertexRestClient
from .interview.drivers import ConversationDriver, RealtimeDriver, TurnBasedDriver
from .interview.engine import InterviewEngine
from .interview.evaluation import InterviewEvaluator
from .interview.extraction import ProfileExtractor, RoleExtractor
from .interview.events import EventLogger, InterviewEventBus, InterviewMetrics
from .interview.models import Message, Role, SessionSelection, Speaker
from .interview.services import ContextBuilder, SessionRecorder
from .utils.logging import setup_logging

logger = logging.getLogger("cli")

END_COMMAND = "/end"


def parse_args(argv) -> Dict[str, Optional[str]]:
    """``--key=value`` options and bare ``--flag`` switches."""
    options: Dict[str, Optional[str]] = {}
    for arg in argv:
        if not arg.startswith("--"):
            continue
        key, sep, value = arg[2:].partition("=")
        options[key] = value if sep else None
    return options


def print_message(message: Message) -> None:
    who = "🎤 Interviewer" if message.role is Speaker.INTERVIEWER else "🙋 You"
    print(f"{who}: {message.text}\n")


def build_llm(config: Config) -> VertexRestClient:
    return VertexRestClient(
        project=config.google_cloud_project,
        location=config.vertex_location,
        model=config.model_name,
        credentials_json=config.google_application_credentials,
    )


def ingest_profile(store: InterviewStore, converter: DocumentConverter, options,
                   extractor: Optional[ProfileExtractor] = None) -> None:
    """
    Create or update the profile from ``--cv`` and ``--name``. With an
    extractor, name, background and strengths are read out of the CV; an
    explicit ``--name`` still wins.
    """
    cv_path = options.get("cv")
    name = options.get("name")
    if not cv_path and not name:
        return

    cv_text = converter.file_to_text(cv_path) if cv_path else None
    cv_file_name = cv_path.rsplit("/", 1)[-1] if cv_path else None

    updates = {}
    if cv_text and extractor is not None:
        try:
            draft = extractor.extract(cv_text)
        except InterviewError as e:
            logger.warning("CV extraction failed, keeping raw text only: %s", e)
            print(f"⚠️  {e.user_message}")
        else:
            updates.update(name=draft.name, background=draft.background, strengths=list(draft.strengths))
    if name:
        updates["name"] = name
    if cv_text:
        updates["default_cv_text"] = cv_text
        updates["default_cv_file_name"] = cv_file_name

    if store.get_profile() is None:
        store.create_profile(
            updates.get("name") or "Candidate",
            background=updates.get("background", ""),
            strengths=updates.get("strengths"),
            cv_text=cv_text,
            cv_file_name=cv_file_name,
        )
        print("👤 Profile created")
        return

    store.update_profile(**updates)
    print("👤 Profile updated")


def resolve_role(store: InterviewStore, converter: DocumentConverter, options,
                 extractor: Optional[RoleExtractor] = None) -> Optional[Role]:
    """
    ``--role=<id>`` picks an existing role. Otherwise a new one is created
    from ``--title``, ``--company`` and ``--jd``; with an extractor, fields
    left out on the command line are read out of the job description.
    """
    role_id = options.get("role")
    if role_id:
        return store.get_role(role_id)

    title = options.get("title")
    company = options.get("company")
    jd_path = options.get("jd")
    if not title and not jd_path:
        return None
    jd_text = converter.file_to_text(jd_path) if jd_path else None

    role_name = None
    if jd_text and extractor is not None and not (title and company):
        try:
            draft = extractor.extract(jd_text)
        except InterviewError as e:
            logger.warning("Job description extraction failed: %s", e)
            print(f"⚠️  {e.user_message}")
        else:
            if not title and not company:
                role_name = draft.role_name or None
            title = title or draft.role_title or None
            company = company or draft.company_name or None

    if not title:
        return None
    company = company or "Unknown company"
    role = store.create_role(
        role_name=role_name or f"{title} at {company}",
        company_name=company,
        role_title=title,
        jd_text=jd_text,
        jd_file_name=jd_path.rsplit("/", 1)[-1] if jd_path else None,
    )
    print(f"📁 Created role {role.role_id}")
    return role


def pick_stage_id(role: Role, requested: Optional[str]) -> Optional[str]:
    if requested:
        return requested
    if not role.sessions:
        return None
    following = next_stage(role, role.sessions[-1].stage_id)
    return following.id if following else role.sessions[-1].stage_id


def build_turn_driver(config: Config, options, bus: InterviewEventBus) -> TurnBasedDriver:
    engine = InterviewEngine(build_llm(config), event_bus=bus)

    capture = playback = None
    use_tts = config.enable_tts and "no-tts" not in options and "text" not in options
    if use_tts:
        from .infrastructure.audio.speech import GoogleSynthesizer, SubprocessAudioPlayer
        from .interview.speech import SpeechPlaybackPipeline
        playback = SpeechPlaybackPipeline(
            GoogleSynthesizer(config.tts_voice, config.tts_speaking_rate, config.language_code),
            SubprocessAudioPlayer(),
        )
    if "voice" in options:
        from .infrastructure.audio.processing import PyAudioMicrophone
        from .infrastructure.audio.speech import GoogleTranscriber
        from .interview.speech import SpeechCapturePipeline
        capture = SpeechCapturePipeline(PyAudioMicrophone(), GoogleTranscriber(config.language_code))

    return TurnBasedDriver(engine, capture=capture, playback=playback, on_message=print_message)


async def run_turns(driver: TurnBasedDriver, context) -> None:
    await driver.start(context)
    voice = driver.capture is not None
    prompt = "[Enter to record, or type] > " if voice else "> "

    while True:
        line = (await asyncio.to_thread(input, prompt)).strip()
        if line == END_COMMAND:
            break
        try:
            if line:
                await driver.send(line)
            elif voice:
                if not driver.start_recording():
                    print(f"❌ {driver.capture.error.user_message}")
                    continue
                await asyncio.to_thread(input, "🔴 Recording... press Enter to send ")
                if await driver.send_recording() is None:
                    error = driver.capture.error
                    print(f"❌ {error.user_message}" if error else "🤷 Didn't catch that, try again.")
        except InterviewError as e:
            print(f"❌ {e.user_message}")

    await driver.end()


async def run_realtime(driver: RealtimeDriver, context) -> None:
    print("🔌 Connecting...")
    await driver.start(context)
    print(f"🟢 Connected. Speak freely; type {END_COMMAND} and Enter to finish.\n")
    while (await asyncio.to_thread(input)).strip() != END_COMMAND:
        pass
    await driver.end()
    for message in driver.messages:
        print_message(message)


async def run_interview(config: Config, options, bus: InterviewEventBus, context) -> ConversationDriver:
    if "realtime" in options:
        from .infrastructure.realtime.client import RealtimeSessionClient
        from .infrastructure.realtime.media import RealtimeMedia
        from .interview.realtime import RealtimeVoiceChannel

        session_client = RealtimeSessionClient(
            config.openai_api_key,
            base_url=config.realtime_base_url,
            model=config.realtime_model,
            voice=config.realtime_voice,
        )
        driver = RealtimeDriver(RealtimeVoiceChannel(session_client, RealtimeMedia(), event_bus=bus))
        try:
            await run_realtime(driver, context)
        finally:
            await driver.end()
            await session_client.close()
        return driver

    driver = build_turn_driver(config, options, bus)
    try:
        await run_turns(driver, context)
    finally:
        await driver.end()
    return driver


def main():
    """Command-line interface for mock interviews."""

    # Load configuration from environment
    try:
        config = get_config()
    except ValueError as e:
        print(f"❌ Configuration Error: {e}")
        sys.exit(1)

    setup_logging(config.log_file, config.log_level)
    options = parse_args(sys.argv[1:])

    bus = InterviewEventBus()
    metrics = InterviewMetrics()
    bus.subscribe_all(EventLogger().handle_event)
    bus.subscribe_all(metrics.handle_event)

    store = InterviewStore(JsonFileStore(config.data_dir))
    converter = DocumentConverter()

    profile_extractor = role_extractor = None
    if "no-extract" not in options:
        extraction_llm = build_llm(config)
        profile_extractor = ProfileExtractor(extraction_llm)
        role_extractor = RoleExtractor(extraction_llm)

    try:
        ingest_profile(store, converter, options, profile_extractor)
        role = resolve_role(store, converter, options, role_extractor)
    except (InterviewError, OSError) as e:
        print(f"❌ {getattr(e, 'user_message', e)}")
        sys.exit(1)

    if role is None:
        print("❌ No role. Use --role=<id>, --jd=file or --title=<title> [--company=...] [--jd=file]")
        for r in store.list_roles():
            print(f"   {r.role_id}  {r.role_name}")
        sys.exit(1)

    selection = SessionSelection(role_id=role.role_id, stage_id=pick_stage_id(role, options.get("stage")))
    try:
        context = ContextBuilder(store).build(selection)
        stage = ContextBuilder.resolve_stage(role, selection.stage_id)
    except InterviewError as e:
        print(f"❌ {e.user_message} ({e})")
        sys.exit(1)
    store.set_selection(selection)

    print(f"📋 {role.role_title} at {role.company_name}: {stage.name} interview")
    print(f"   Type {END_COMMAND} to finish.\n")

    try:
        driver = asyncio.run(run_interview(config, options, bus, context))
    except (InterviewError, ValueError) as e:
        print(f"❌ {getattr(e, 'user_message', e)}")
        logger.error("Interview aborted: %s", e)
        sys.exit(1)
    except KeyboardInterrupt:
        print("\n👋 Interview abandoned")
        sys.exit(130)

    messages = driver.messages
    if not any(m.role is Speaker.CANDIDATE for m in messages):
        print("📝 Nothing answered, session not recorded.")
        return

    recorder = SessionRecorder(store)
    recorder.record(role.role_id, stage, driver.session_id, driver.started_at, driver.ended_at, messages)

    print("🧮 Evaluating your interview...")
    try:
        analysis = InterviewEvaluator(build_llm(config)).evaluate(messages, context)
    except InterviewError as e:
        print(f"❌ {e.user_message}")
        return
    recorder.attach_analysis(role.role_id, driver.session_id, analysis)

    print(f"\n🏁 Score: {analysis.score}/100")
    print(analysis.summary)
    for title, items in (("Strengths", analysis.strengths),
                         ("Weaknesses", analysis.weaknesses),
                         ("Improvements", analysis.improvements)):
        if items:
            print(f"\n{title}:")
            for item in items:
                print(f"  • {item}")

    following = next_stage(store.get_role(role.role_id), stage.id)
    if following:
        print(f"\n➡️  Next up: {following.name} (--role={role.role_id} --stage={following.id})")
    logger.info("Metrics: %s", metrics.get_metrics())


if __name__ == "__main__":
    main()
