import concurrent.futures
import io
import os
import sys
import threading
import time
import unittest


PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from poddle.errors import ServiceResponseInvalid  # noqa: E402
from poddle.models.schemas import PhraseEntry, PodcastSpec, SynthesisRequest  # noqa: E402
from poddle.modules.speech_requests import (  # noqa: E402
    SpeechRequestBuilder,
    build_phrase_entries,
    is_pause_before,
    quiz_intro_text,
    to_ssml,
)
from poddle.utils.logging_utils import LoggingManager  # noqa: E402


class InlineExecutor(concurrent.futures.Executor):
    """Runs submitted work immediately so call order is observable."""

    def submit(self, fn, *args, **kwargs):
        future = concurrent.futures.Future()
        try:
            future.set_result(fn(*args, **kwargs))
        except BaseException as exc:  # noqa: BLE001
            future.set_exception(exc)
        return future


class FakePollyClient:
    def __init__(self, missing_audio=(), empty_audio=(), delay_for=None):
        self.calls = []
        self.missing_audio = set(missing_audio)
        self.empty_audio = set(empty_audio)
        self.delay_for = delay_for
        self._lock = threading.Lock()

    def synthesize_speech(self, **params):
        with self._lock:
            self.calls.append(params)
        text = params["Text"]
        if self.delay_for:
            time.sleep(self.delay_for(text))
        if text in self.missing_audio:
            return {"ContentType": "audio/ogg"}
        if text in self.empty_audio:
            return {"AudioStream": io.BytesIO(b""), "RequestCharacters": 0}
        return {"AudioStream": io.BytesIO(text.encode("utf-8")), "RequestCharacters": len(text)}


def _requests(count):
    return [
        SynthesisRequest(text=f"<speak>{i}</speak>", voice_id="Ivy", language_code="en-US")
        for i in range(count)
    ]


class PhraseEntryTests(unittest.TestCase):
    def test_title_and_quiz_intro_lead_then_pairs_alternate(self) -> None:
        spec = PodcastSpec(title="Intro", lang="es-US", hostLang="en-US", set=[("Hola", "Hello"), ("Sí", "Yes")])
        entries = build_phrase_entries(spec)
        self.assertEqual(entries, [
            PhraseEntry(is_host_language=True, text="Intro"),
            PhraseEntry(is_host_language=True, text=quiz_intro_text("es-US")),
            PhraseEntry(is_host_language=False, text="Hola"),
            PhraseEntry(is_host_language=True, text="Hello"),
            PhraseEntry(is_host_language=False, text="Sí"),
            PhraseEntry(is_host_language=True, text="Yes"),
        ])

    def test_quiz_intro_names_the_guest_language(self) -> None:
        self.assertEqual(
            quiz_intro_text("fr-FR"),
            "Now it's time for a quiz! Say the following phrases in French:",
        )
        self.assertIn("xx-XX", quiz_intro_text("xx-XX"))

    def test_host_and_guest_ssml_differ(self) -> None:
        self.assertEqual(
            to_ssml(PhraseEntry(is_host_language=True, text="Hello")),
            "<speak>Hello<break /><break /></speak>",
        )
        self.assertEqual(
            to_ssml(PhraseEntry(is_host_language=False, text="Hola")),
            '<speak><prosody rate="x-slow">Hola</prosody><break /></speak>',
        )

    def test_ssml_escapes_markup_characters(self) -> None:
        ssml = to_ssml(PhraseEntry(is_host_language=True, text="Salt & <pepper>"))
        self.assertIn("Salt &amp; &lt;pepper&gt;", ssml)

    def test_requests_use_voice_and_language_per_side(self) -> None:
        spec = PodcastSpec(title="T", lang="es-US", set=[("Hola", "Hello")])
        builder = SpeechRequestBuilder(FakePollyClient(), LoggingManager(quiet=True), "Matthew", "Pedro")
        requests = builder.build_requests(spec)
        self.assertEqual(
            [(r.voice_id, r.language_code) for r in requests],
            [("Matthew", "en-US"), ("Matthew", "en-US"), ("Pedro", "es-US"), ("Matthew", "en-US")],
        )
        self.assertTrue(all(r.engine == "neural" and r.output_format == "ogg_vorbis" for r in requests))


class PacingTests(unittest.TestCase):
    def _builder(self, client, events):
        async def fake_sleep(seconds):
            events.append((seconds, len(client.calls)))

        return SpeechRequestBuilder(
            client,
            LoggingManager(quiet=True),
            "Ivy",
            "Lupe",
            sleep=fake_sleep,
            executor=InlineExecutor(),
        )

    def test_pause_before_every_eighth_request(self) -> None:
        client = FakePollyClient()
        events = []
        self._builder(client, events).synthesize_all(_requests(17))
        self.assertEqual(events, [(1.0, 7), (1.0, 15)])
        self.assertEqual(len(client.calls), 17)

    def test_no_pause_for_short_batch(self) -> None:
        client = FakePollyClient()
        events = []
        self._builder(client, events).synthesize_all(_requests(7))
        self.assertEqual(events, [])

    def test_exactly_eight_requests_pause_once(self) -> None:
        client = FakePollyClient()
        events = []
        self._builder(client, events).synthesize_all(_requests(8))
        self.assertEqual(events, [(1.0, 7)])

    def test_pause_points(self) -> None:
        self.assertEqual([i for i in range(24) if is_pause_before(i)], [7, 15, 23])


class SynthesisTests(unittest.TestCase):
    def test_results_follow_request_order_not_completion_order(self) -> None:
        # Earlier requests take longer, so they finish last.
        client = FakePollyClient(delay_for=lambda text: 0.05 - 0.004 * int(text[7:-8]))

        async def no_sleep(seconds):
            return None

        requests = _requests(10)
        with concurrent.futures.ThreadPoolExecutor(max_workers=10) as executor:
            builder = SpeechRequestBuilder(
                client, LoggingManager(quiet=True), "Ivy", "Lupe", sleep=no_sleep, executor=executor
            )
            clips = builder.synthesize_all(requests)

        self.assertEqual(clips, [r.text.encode("utf-8") for r in requests])

    def test_missing_audio_stream_aborts_batch(self) -> None:
        requests = _requests(5)
        client = FakePollyClient(missing_audio={requests[3].text})
        builder = SpeechRequestBuilder(
            client, LoggingManager(quiet=True), "Ivy", "Lupe", executor=InlineExecutor()
        )
        with self.assertRaises(ServiceResponseInvalid) as ctx:
            builder.synthesize_all(requests)
        self.assertEqual(ctx.exception.index, 3)

    def test_empty_audio_stream_aborts_batch(self) -> None:
        requests = _requests(3)
        client = FakePollyClient(empty_audio={requests[0].text})
        builder = SpeechRequestBuilder(
            client, LoggingManager(quiet=True), "Ivy", "Lupe", executor=InlineExecutor()
        )
        with self.assertRaises(ServiceResponseInvalid):
            builder.synthesize_all(requests)

    def test_each_call_is_metered(self) -> None:
        logger = LoggingManager(quiet=True)
        builder = SpeechRequestBuilder(FakePollyClient(), logger, "Ivy", "Lupe", executor=InlineExecutor())
        requests = _requests(3)
        builder.synthesize_all(requests)

        phrase_stages = sorted(
            s.stage_name for s in logger.stage_metrics if s.stage_name.startswith("tts_phrase_")
        )
        self.assertEqual(phrase_stages, ["tts_phrase_0", "tts_phrase_1", "tts_phrase_2"])
        self.assertEqual(logger.get_total_characters(), sum(len(r.text) for r in requests))
        self.assertGreater(logger.get_total_cost(), 0.0)


if __name__ == "__main__":
    unittest.main()
