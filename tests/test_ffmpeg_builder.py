"""
Tests for the filter graph builder and command emitter.

These tests verify that timelines are compiled into well-formed, labelled
filter graphs and that the emitted ffmpeg command is deterministic and
correctly escaped.
"""

import pytest

from reelgraph.config import Settings
from reelgraph.errors import InvalidFilterError, UnknownLayerError
from reelgraph.models.layer_models import (
    Border,
    ChromaKey,
    PanZoomOptions,
    Position,
    Shadow,
    Timeline,
    Transform,
    VisualEffects,
)
from reelgraph.models.render_models import (
    OutputOptions,
    RenderPreset,
    VideoCodec,
    VideoSettings,
)
from reelgraph.utils.ffmpeg_builder import (
    TimelineToFFmpeg,
    build_atempo_chain,
    build_command,
    build_render_command,
    emit,
    shell_escape,
)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def settings() -> Settings:
    """Default settings, independent of the environment."""
    return Settings()


@pytest.fixture
def basic_timeline() -> Timeline:
    """One video layer plus one gated text layer."""
    return (
        Timeline()
        .add_video("intro.mp4", duration=10)
        .add_text(
            "Hello",
            start_time=2,
            duration=3,
            position=Position(x="50%", y="80%", anchor="center"),
        )
    )


@pytest.fixture
def audio_timeline() -> Timeline:
    """Video plus two audio layers."""
    return (
        Timeline()
        .add_video("intro.mp4", duration=10)
        .add_audio("music.mp3", duration=10, volume=0.5, fade_in=1, fade_out=2)
        .add_audio("voice.wav", start_time=1.5, duration=4)
    )


def compile_graph(timeline, settings, source_map=None):
    return TimelineToFFmpeg(timeline, source_map, settings).compile()


# =============================================================================
# GRAPH STRUCTURE TESTS
# =============================================================================


class TestBasicComposition:
    """Tests for the video + text scenario."""

    def test_two_distinct_layer_labels(self, basic_timeline, settings):
        """Test that each layer gets exactly one distinct label."""
        graph = compile_graph(basic_timeline, settings)

        assert graph.layer_labels == ["vid0", "txt0"]

    def test_text_node_is_gated(self, basic_timeline, settings):
        """Test that the text-draw node carries the layer's time window."""
        graph = compile_graph(basic_timeline, settings)

        drawtext = graph.nodes_named("drawtext")
        assert len(drawtext) == 1
        assert drawtext[0].param("enable") == "'between(t,2,5)'"
        assert drawtext[0].param("text") == "Hello"

    def test_text_is_anchored_at_center(self, basic_timeline, settings):
        """Test that the text anchor offsets the resolved target point."""
        graph = compile_graph(basic_timeline, settings)

        drawtext = graph.nodes_named("drawtext")[0]
        assert drawtext.param("x") == "960-text_w/2"
        assert drawtext.param("y") == "864-text_h/2"

    def test_single_overlay_node(self, basic_timeline, settings):
        """Test that the text layer enters the fold through one overlay."""
        graph = compile_graph(basic_timeline, settings)

        overlays = graph.nodes_named("overlay")
        assert len(overlays) == 1
        assert overlays[0].inputs == ("vid0", "txt0")
        assert graph.video_output == overlays[0].output

    def test_command_contains_source_and_text(self, basic_timeline, settings):
        """Test that the emitted command names the source and the literal text."""
        graph = compile_graph(basic_timeline, settings)
        command = emit(graph, output_path="out.mp4", settings=settings)

        assert command.startswith("ffmpeg -y -i intro.mp4")
        assert "Hello" in command
        assert '-map "[comp0]"' in command
        assert command.endswith("out.mp4")

    def test_base_layer_is_fitted_to_frame(self, basic_timeline, settings):
        """Test that the base video is scaled and padded to the output frame."""
        graph = compile_graph(basic_timeline, settings)
        rendered = graph.render()

        assert "scale=w=1920:h=1080:force_original_aspect_ratio=decrease" in rendered
        assert "pad=w=1920:h=1080:x='(ow-iw)/2':y='(oh-ih)/2':color=black" in rendered
        assert "trim=duration=10" in rendered


class TestDeterminism:
    """Tests for byte-identical output."""

    def test_same_timeline_same_command(self, basic_timeline, settings):
        """Test that compiling twice yields identical commands."""
        first = TimelineToFFmpeg(basic_timeline, settings=settings).build_command_string()
        second = TimelineToFFmpeg(basic_timeline, settings=settings).build_command_string()

        assert first == second

    def test_snapshot_round_trip_compiles_identically(self, basic_timeline, settings):
        """Test that a serialized snapshot reconstructs the same graph."""
        restored = Timeline.from_json(basic_timeline.to_json())

        original = compile_graph(basic_timeline, settings).render()
        assert compile_graph(restored, settings).render() == original


class TestLabels:
    """Tests for label allocation."""

    def test_labels_unique_for_thousands_of_layers(self, settings):
        """Test that thousands of layers compile without label collisions."""
        timeline = Timeline().add_video("bg.mp4", duration=60)
        for i in range(2000):
            timeline = timeline.add_text(f"line {i}", start_time=i % 50, duration=1)

        graph = compile_graph(timeline, settings)

        assert len(graph.layer_labels) == 2001
        assert len(set(graph.layer_labels)) == 2001
        assert len(set(graph.output_labels)) == len(graph.output_labels)

    def test_labels_use_per_kind_counters(self, settings):
        """Test that each layer kind has its own counter."""
        timeline = (
            Timeline()
            .add_video("a.mp4", duration=5)
            .add_image("logo.png", position=Position.named("top-right"))
            .add_audio("music.mp3")
            .add_text("Title")
            .add_filter("hflip")
            .add_video("b.mp4", duration=5, position=Position(x=100, y=100))
        )

        graph = compile_graph(timeline, settings)

        assert graph.layer_labels == ["vid0", "img0", "aud0", "txt0", "flt0", "vid1"]


class TestEmptyTimeline:
    """Tests for zero-layer timelines."""

    def test_empty_graph_is_well_formed(self, settings):
        """Test that no layers produce an empty graph."""
        graph = compile_graph(Timeline(), settings)

        assert graph.is_empty
        assert graph.render() == ""
        assert graph.video_output is None
        assert graph.audio_output is None

    def test_empty_graph_emits_no_filter_or_map(self, settings):
        """Test that the command omits the filter graph and maps."""
        command = emit(compile_graph(Timeline(), settings), settings=settings)

        assert "-filter_complex" not in command
        assert "-map" not in command


class TestInputs:
    """Tests for input collection."""

    def test_one_input_per_distinct_source(self, settings):
        """Test that repeated sources share one input, in first-use order."""
        timeline = (
            Timeline()
            .add_video("b.mp4", duration=5)
            .add_video("a.mp4", start_time=1, duration=2, position=Position(x=10, y=10))
            .add_video("b.mp4", start_time=3, duration=1, position=Position(x=20, y=20))
        )

        graph = compile_graph(timeline, settings)

        assert [inp.source for inp in graph.inputs] == ["b.mp4", "a.mp4"]

    def test_source_map_resolves_paths(self, basic_timeline, settings):
        """Test that mapped sources use the resolved local path."""
        graph = compile_graph(basic_timeline, settings, {"intro.mp4": "/media/intro.mp4"})

        assert graph.inputs[0].file_path == "/media/intro.mp4"

    def test_missing_source_warning(self, basic_timeline, settings, caplog):
        """Test that unresolved sources still compile and log a warning."""
        graph = compile_graph(basic_timeline, settings, {})

        assert graph.inputs[0].file_path == "intro.mp4"
        assert graph.layer_labels == ["vid0", "txt0"]
        assert "Source intro.mp4 not found in source_map" in caplog.text

    def test_image_input_is_looped(self, settings):
        """Test that still images are looped for the timeline duration."""
        timeline = Timeline().add_image("photo.jpg", duration=5)

        graph = compile_graph(timeline, settings)

        assert graph.inputs[0].options == ("-loop", "1", "-framerate", "30", "-t", "5")

    def test_unbounded_image_alone_is_finite(self, settings):
        """Test that a lone image without a duration still gets a bounded loop."""
        converter = TimelineToFFmpeg(Timeline().add_image("a.png"), settings=settings)

        cmd_str = converter.build_command_string()

        assert "-loop 1 -framerate 30 -t 5 -i a.png" in cmd_str

    def test_unbounded_image_with_filter_bounds_canvas(self, settings):
        """Test that images plus filters bound the canvas they are drawn on."""
        timeline = (
            Timeline()
            .add_image("a.png", position=Position.named("top-left"), transform=Transform(scale=0.5))
            .add_filter("hflip")
        )

        graph = compile_graph(timeline, settings)

        assert graph.nodes_named("color")[0].param("d") == "5"


class TestVisualLayers:
    """Tests for visual layer chains and the overlay fold."""

    def test_overlay_layer_is_delayed_and_gated(self, settings):
        """Test that a later video is shifted to its start and enable-gated."""
        timeline = (
            Timeline()
            .add_video("bg.mp4", duration=10)
            .add_video("cam.mp4", start_time=2, duration=3, position=Position(x=100, y=50))
        )

        graph = compile_graph(timeline, settings)
        overlay = graph.nodes_named("overlay")[0]

        assert overlay.param("enable") == "'between(t,2,5)'"
        assert overlay.param("eof_action") == "pass"
        assert overlay.param("x") == "100"
        assert "setpts=expr=PTS-STARTPTS+2/TB" in graph.render()

    def test_unbounded_layer_gate_is_open_ended(self, settings):
        """Test that a layer with no end is gated until infinity."""
        timeline = (
            Timeline()
            .add_video("bg.mp4", duration=10)
            .add_image("logo.png", start_time=1, position=Position.named("top-left", margin=10))
        )

        overlay = compile_graph(timeline, settings).nodes_named("overlay")[0]

        assert overlay.param("enable") == "'between(t,1,inf)'"

    def test_overlays_fold_in_z_order(self, settings):
        """Test that each overlay consumes the previous composite."""
        timeline = Timeline().add_video("bg.mp4", duration=10)
        for i in range(3):
            timeline = timeline.add_video(f"clip{i}.mp4", duration=2, position=Position(x=i, y=i))

        overlays = compile_graph(timeline, settings).nodes_named("overlay")

        assert [node.inputs for node in overlays] == [
            ("vid0", "vid1"),
            ("comp0", "vid2"),
            ("comp1", "vid3"),
        ]

    def test_corner_position_with_scale(self, settings):
        """Test that corner placement subtracts the overlay size."""
        timeline = (
            Timeline()
            .add_video("bg.mp4", duration=10)
            .add_video(
                "cam.mp4",
                duration=10,
                position=Position.named("bottom-right", margin=20),
                transform=Transform(scale=0.25),
            )
        )

        graph = compile_graph(timeline, settings)
        overlay = graph.nodes_named("overlay")[0]

        assert overlay.param("x") == "1900-overlay_w"
        assert overlay.param("y") == "1060-overlay_h"
        assert "scale=w=iw*0.25:h=ih*0.25" in graph.render()

    def test_trim_and_speed(self, settings):
        """Test source trims and playback speed."""
        timeline = Timeline().add_video("clip.mp4", trim_start=2, trim_end=6, speed=2)

        rendered = compile_graph(timeline, settings).render()

        assert "trim=start=2:end=6" in rendered
        assert "setpts=expr='(PTS-STARTPTS)/2'" in rendered

    def test_trimmed_overlay_gate_uses_source_span(self, settings):
        """Test that a trimmed layer with no end is gated by its trimmed length."""
        timeline = (
            Timeline()
            .add_video("bg.mp4", duration=10)
            .add_video("clip.mp4", start_time=1, trim_start=2, trim_end=6, position=Position(x=5, y=5))
        )

        overlay = compile_graph(timeline, settings).nodes_named("overlay")[0]

        assert overlay.param("enable") == "'between(t,1,5)'"

    def test_effects_chain_order(self, settings):
        """Test that geometry precedes effects in the local chain."""
        timeline = Timeline().add_video(
            "clip.mp4",
            duration=5,
            effects=VisualEffects(brightness=0.1, contrast=1.2, blur=4, vignette=0.5),
        )

        names = [node.name for node in compile_graph(timeline, settings).nodes]

        assert names.index("scale") < names.index("eq") < names.index("boxblur")
        assert names.index("boxblur") < names.index("vignette")

    def test_color_grade_params(self, settings):
        """Test that only the set grade values are emitted."""
        timeline = Timeline().add_video(
            "clip.mp4", duration=5, effects=VisualEffects(brightness=0.1, saturation=1.5)
        )

        eq = compile_graph(timeline, settings).nodes_named("eq")[0]

        assert eq.params == (("brightness", "0.1"), ("saturation", "1.5"))

    def test_border_and_rounded_corners(self, settings):
        """Test drawbox borders and the rounded-corner alpha mask."""
        timeline = (
            Timeline()
            .add_video("bg.mp4", duration=10)
            .add_video(
                "cam.mp4",
                duration=10,
                position=Position(x=10, y=10),
                border=Border(width=4, color="#ff0000"),
                border_radius=20,
            )
        )

        graph = compile_graph(timeline, settings)
        drawbox = graph.nodes_named("drawbox")[0]
        geq = graph.nodes_named("geq")[0]

        assert drawbox.param("color") == "0xFF0000"
        assert drawbox.param("t") == "4"
        assert "hypot" in geq.param("a")

    def test_shadow_branch_overlays_first(self, settings):
        """Test that the shadow is composited before the layer itself."""
        timeline = (
            Timeline()
            .add_video("bg.mp4", duration=10)
            .add_video(
                "cam.mp4",
                duration=10,
                position=Position.named("bottom-right", margin=20),
                transform=Transform(scale=0.25),
                shadow=Shadow(offset_x=6, offset_y=-4),
            )
        )

        graph = compile_graph(timeline, settings)
        overlays = graph.nodes_named("overlay")

        assert overlays[0].inputs == ("vid0", "shd0")
        assert overlays[0].param("x") == "1900-overlay_w+6"
        assert overlays[0].param("y") == "1060-overlay_h-4"
        assert overlays[1].inputs == ("comp0", "vid1")
        assert graph.nodes_named("lutrgb")[0].param("a") == "val*0.5"

    def test_text_first_uses_background_canvas(self, settings):
        """Test that a canvas is created when no video starts the fold."""
        graph = compile_graph(Timeline().add_text("Title"), settings)

        canvas = graph.nodes[0]
        assert canvas.name == "color"
        assert canvas.output == "canvas0"
        assert graph.nodes_named("overlay")[0].inputs == ("canvas0", "txt0")

    def test_ken_burns_image(self, settings):
        """Test that a Ken Burns image is sized by zoompan."""
        timeline = Timeline().add_image("photo.jpg", duration=5, ken_burns=PanZoomOptions())

        graph = compile_graph(timeline, settings)
        zoompan = graph.nodes_named("zoompan")[0]

        assert zoompan.param("s") == "1920x1080"
        assert zoompan.param("d") == "1"
        assert not graph.nodes_named("scale")


class TestClamping:
    """Tests for out-of-range values compiling into range."""

    @pytest.mark.parametrize("value", [1.5, -0.5])
    def test_keying_and_opacity_are_clamped(self, settings, value):
        """Test that similarity, blend and opacity land in [0, 1]."""
        timeline = (
            Timeline()
            .add_video("bg.mp4", duration=10)
            .add_video(
                "green.mp4",
                duration=10,
                chroma_key=ChromaKey(similarity=value, blend=value),
                opacity=value,
            )
        )

        graph = compile_graph(timeline, settings)
        chromakey = graph.nodes_named("chromakey")[0]
        mixer = graph.nodes_named("colorchannelmixer")[0]

        for param in (chromakey.param("similarity"), chromakey.param("blend"), mixer.param("aa")):
            assert 0.0 <= float(param) <= 1.0


class TestChromaKey:
    """Tests for the chromakey fragment in compiled graphs."""

    def test_default_key_color(self, settings):
        """Test that an omitted key color compiles to green."""
        timeline = (
            Timeline()
            .add_video("bg.mp4", duration=10)
            .add_video("green.mp4", duration=10, chroma_key=ChromaKey())
        )

        chromakey = compile_graph(timeline, settings).nodes_named("chromakey")[0]

        assert chromakey.param("color") == "0x00FF00"

    def test_invalid_key_color_falls_back(self, settings):
        """Test that an unparseable key color still yields a key color."""
        timeline = (
            Timeline()
            .add_video("bg.mp4", duration=10)
            .add_video("green.mp4", duration=10, chroma_key=ChromaKey(color="not-a-color"))
        )

        chromakey = compile_graph(timeline, settings).nodes_named("chromakey")[0]

        assert chromakey.param("color") == "0x00FF00"

    def test_keying_precedes_geometry(self, settings):
        """Test that the key is pulled before scaling."""
        timeline = (
            Timeline()
            .add_video("bg.mp4", duration=10)
            .add_video(
                "green.mp4",
                duration=10,
                chroma_key=ChromaKey(color="#00ff00"),
                transform=Transform(scale=0.5),
            )
        )

        names = [node.name for node in compile_graph(timeline, settings).nodes]

        assert names.index("chromakey") < names.index("scale")


class TestTextLayers:
    """Tests for text-draw chains."""

    def test_text_is_escaped(self, settings):
        """Test that graph metacharacters in text are escaped."""
        timeline = Timeline().add_text("It's 50%: done, [ok]")

        drawtext = compile_graph(timeline, settings).nodes_named("drawtext")[0]

        assert drawtext.param("text") == r"It\\\'s 50\\\\%\\: done\, \[ok\]"

    def test_shell_metacharacters_are_escaped(self, settings):
        """Test that the double-quoted graph argument survives the shell."""
        timeline = Timeline().add_text('Say "hi" $HOME')

        command = emit(compile_graph(timeline, settings), settings=settings)

        assert r'Say \"hi\" \$HOME' in command

    def test_multiline_text_draws_one_node_per_line(self, settings):
        """Test that each line gets its own text-draw node."""
        timeline = Timeline().add_text("Line one\nLine two")

        drawtext = compile_graph(timeline, settings).nodes_named("drawtext")

        assert [node.param("text") for node in drawtext] == ["Line one", "Line two"]
        assert [node.param("y") for node in drawtext] == ["482.4", "540"]

    def test_style_params_are_resolved(self, settings):
        """Test that the default font file from settings is used."""
        settings = Settings(font_file="/fonts/Inter.ttf")
        timeline = Timeline().add_text("Hi")

        drawtext = compile_graph(timeline, settings).nodes_named("drawtext")[0]

        assert drawtext.param("fontfile") == "/fonts/Inter.ttf"
        assert drawtext.param("fontsize") == "48"
        assert drawtext.param("fontcolor") == "white"


class TestFilterLayers:
    """Tests for filter layers applied to the composite."""

    def test_filter_applies_to_composite(self, settings):
        """Test that a filter consumes the running composite and is gated."""
        timeline = (
            Timeline()
            .add_video("bg.mp4", duration=10)
            .add_filter("eq", {"contrast": 1.2}, start_time=2, duration=3)
        )

        graph = compile_graph(timeline, settings)
        node = graph.nodes_named("eq")[0]

        assert node.inputs == ("vid0",)
        assert node.output == "flt0"
        assert node.param("contrast") == "1.2"
        assert node.param("enable") == "'between(t,2,5)'"
        assert graph.video_output == "flt0"

    def test_ungated_filter(self, settings):
        """Test that a whole-timeline filter has no enable option."""
        timeline = Timeline().add_video("bg.mp4", duration=10).add_filter("hflip")

        node = compile_graph(timeline, settings).nodes_named("hflip")[0]

        assert node.params == ()

    def test_illegal_filter_name(self, settings):
        """Test that a filter name with graph metacharacters is rejected."""
        timeline = Timeline().add_video("bg.mp4", duration=10).add_filter("eq;drop")

        with pytest.raises(InvalidFilterError) as exc_info:
            compile_graph(timeline, settings)

        assert "Layer 1" in str(exc_info.value)

    def test_filter_without_legal_params(self, settings):
        """Test that a filter whose params all resolve away is rejected."""
        timeline = Timeline().add_video("bg.mp4", duration=10).add_filter("eq", {"contrast": None})

        with pytest.raises(InvalidFilterError) as exc_info:
            compile_graph(timeline, settings)

        assert "no graph-legal parameters" in str(exc_info.value)

    def test_unknown_layer_variant(self, settings):
        """Test that an unrecognized layer type names the offending layer."""
        timeline = Timeline().add_video("bg.mp4", duration=10).add_layer("not a layer")

        with pytest.raises(UnknownLayerError) as exc_info:
            compile_graph(timeline, settings)

        assert "Layer 1" in str(exc_info.value)
        assert "str" in str(exc_info.value)


class TestAudioLayers:
    """Tests for audio chains and mixing."""

    def test_audio_layers_are_mixed(self, audio_timeline, settings):
        """Test that several audio layers are mixed into one output."""
        graph = compile_graph(audio_timeline, settings)
        amix = graph.nodes_named("amix")[0]

        assert amix.inputs == ("aud0", "aud1")
        assert amix.param("inputs") == "2"
        assert amix.param("duration") == "longest"
        assert graph.audio_output == "amix0"

    def test_audio_chain_params(self, audio_timeline, settings):
        """Test volume, fades and delay."""
        rendered = compile_graph(audio_timeline, settings).render()

        assert "[1:a]asetpts=expr=PTS-STARTPTS" in rendered
        assert "volume=volume=0.5" in rendered
        assert "afade=t=in:st=0:d=1" in rendered
        assert "afade=t=out:st=8:d=2" in rendered
        assert "adelay=delays=1500:all=1" in rendered

    def test_single_audio_layer_is_not_mixed(self, settings):
        """Test that one audio layer maps directly."""
        timeline = Timeline().add_video("bg.mp4", duration=5).add_audio("music.mp3", duration=5)

        graph = compile_graph(timeline, settings)

        assert not graph.nodes_named("amix")
        assert graph.audio_output == "aud0"

    def test_no_audio_map_without_audio_layers(self, basic_timeline, settings):
        """Test that the audio map and codec options are omitted."""
        command = emit(compile_graph(basic_timeline, settings), settings=settings)

        assert command.count("-map") == 1
        assert "-c:a" not in command

    def test_audio_map_present(self, audio_timeline, settings):
        """Test that video and audio outputs are both mapped."""
        command = emit(compile_graph(audio_timeline, settings), settings=settings)

        assert '-map "[vid0]" -map "[amix0]"' in command
        assert "-c:a aac" in command

    def test_pitch_and_tempo(self, settings):
        """Test pitch shift and tempo change filters."""
        timeline = Timeline().add_audio("voice.wav", pitch=1.1, tempo=4.0)

        graph = compile_graph(timeline, settings)
        rendered = graph.render()

        tempos = [node.param("tempo") for node in graph.nodes_named("atempo")]
        assert tempos == ["2", "2", "0.909091"]
        assert "asetrate=r=52800" in rendered
        assert "aresample=osr=48000" in rendered

    def test_filters_and_trim(self, settings):
        """Test source trim and EQ filters."""
        timeline = Timeline().add_audio(
            "voice.wav", trim_start=1, trim_end=4, lowpass=8000, highpass=80
        )

        rendered = compile_graph(timeline, settings).render()

        assert "atrim=start=1:end=4" in rendered
        assert "lowpass=f=8000" in rendered
        assert "highpass=f=80" in rendered


class TestAtempoChain:
    """Tests for audio tempo filter chain building."""

    def test_normal_speed(self):
        """Test no atempo step for normal speed."""
        assert build_atempo_chain(1.0) == []

    def test_fast_speed(self):
        """Test chained steps above the filter's range."""
        assert build_atempo_chain(4.0) == [2.0, 2.0]

    def test_slow_speed(self):
        """Test chained steps below the filter's range."""
        assert build_atempo_chain(0.25) == [0.5, 0.5]

    def test_in_range(self):
        """Test a single step inside the range."""
        assert build_atempo_chain(1.5) == [1.5]


# =============================================================================
# EMITTER TESTS
# =============================================================================


class TestOutputOptions:
    """Tests for encode options."""

    def test_cpu_encoding_options(self, basic_timeline, settings):
        """Test CPU encoder options."""
        cmd = build_command(compile_graph(basic_timeline, settings), settings=settings)

        assert "-c:v" in cmd.output_options
        assert "libx264" in cmd.output_options
        assert "-crf" in cmd.output_options
        assert "-r" in cmd.output_options

    def test_gpu_encoding_options(self, basic_timeline, settings):
        """Test GPU encoder options."""
        options = OutputOptions(preset=RenderPreset.high_quality_export())

        cmd = build_command(compile_graph(basic_timeline, settings), options, settings=settings)

        assert "h264_nvenc" in cmd.output_options
        assert "-cq" in cmd.output_options
        assert "-crf" not in cmd.output_options

    def test_vp9_has_no_preset(self, basic_timeline, settings):
        """Test that VP9 output skips the x264-style preset."""
        preset = RenderPreset(name="webm", video=VideoSettings(codec=VideoCodec.VP9))

        cmd = build_command(
            compile_graph(basic_timeline, settings),
            OutputOptions(preset=preset),
            "out.webm",
            settings,
        )

        assert "libvpx-vp9" in cmd.output_options
        assert "-preset" not in cmd.output_options
        assert "-movflags" not in cmd.output_options

    def test_faststart_option(self, basic_timeline, settings):
        """Test that mp4 output gets faststart."""
        cmd = build_command(compile_graph(basic_timeline, settings), output_path="a.mp4", settings=settings)

        assert "-movflags" in cmd.output_options
        assert "+faststart" in cmd.output_options

    def test_explicit_duration(self, basic_timeline, settings):
        """Test that an explicit timeline duration bounds the output."""
        graph = compile_graph(basic_timeline.set_duration(8), settings)

        cmd = build_command(graph, settings=settings)

        assert cmd.output_options[-4:-2] == ["-t", "8"]

    def test_extra_args_precede_output(self, basic_timeline, settings):
        """Test that extra args come right before the output path."""
        options = OutputOptions(extra_args=["-shortest"])

        command = emit(compile_graph(basic_timeline, settings), options, "out.mp4", settings)

        assert command.endswith("-shortest out.mp4")


class TestCommandBuilding:
    """Tests for building complete ffmpeg commands."""

    def test_global_flags(self, basic_timeline, settings):
        """Test overwrite, hardware acceleration and program name."""
        options = OutputOptions(
            overwrite=False, hardware_acceleration="cuda", ffmpeg_bin="/opt/ffmpeg/bin/ffmpeg"
        )

        command = emit(compile_graph(basic_timeline, settings), options, "out.mp4", settings)

        assert command.startswith("/opt/ffmpeg/bin/ffmpeg -n -hwaccel cuda -i intro.mp4")

    def test_output_path_is_quoted(self, basic_timeline, settings):
        """Test that paths with spaces are shell-quoted."""
        command = emit(compile_graph(basic_timeline, settings), output_path="my render.mp4", settings=settings)

        assert command.endswith("'my render.mp4'")

    def test_to_args_is_unescaped(self, basic_timeline, settings):
        """Test the argument vector form of the command."""
        graph = compile_graph(basic_timeline, settings)

        args = build_command(graph, output_path="out.mp4", settings=settings).to_args()

        assert args[:4] == ["ffmpeg", "-y", "-i", "intro.mp4"]
        assert args[4:6] == ["-filter_complex", graph.render()]
        assert args[-1] == "out.mp4"

    def test_build_render_command_from_snapshot(self, basic_timeline, monkeypatch):
        """Test the convenience helper with a snapshot dict."""
        monkeypatch.delenv("REELGRAPH_FFMPEG_BIN", raising=False)

        cmd_str = build_render_command(
            basic_timeline.to_snapshot(),
            {"intro.mp4": "/inputs/intro.mp4"},
            None,
            "/outputs/render.mp4",
        )

        assert cmd_str.startswith("ffmpeg -y -i /inputs/intro.mp4")
        assert cmd_str.endswith("/outputs/render.mp4")

    def test_shell_escape(self):
        """Test escaping for a double-quoted shell word."""
        assert shell_escape('a\\b "c" $d `e`') == 'a\\\\b \\"c\\" \\$d \\`e\\`'
