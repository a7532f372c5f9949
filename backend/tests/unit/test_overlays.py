"""Tests for the overlay executors and asset resolution."""
import base64
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

from conftest import make_media_info
from montage.editing.core.processor import AssetResolutionError, EngineError, ParameterError
from montage.editing.processors.overlays import (
    AudioOverlayProcessor,
    ImageOverlayProcessor,
    VideoOverlayProcessor,
)
from montage.schemas.edit_plan import parse_operation
from montage.services.asset_resolver import AssetResolver, decode_data_uri, extension_for_mime

PROCESSOR_BASE = 'montage.editing.processors.base'

PNG_1X1 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)
PNG_DATA_URI = f"data:image/png;base64,{PNG_1X1}"


def _op(kind, **fields):
    return parse_operation({'id': f'{kind}-1', 'kind': kind, **fields})


def _arg_after(args, flag):
    return args[args.index(flag) + 1]


class TestAssetResolver:
    def test_data_uri_is_decoded_to_an_owned_temp_file(self, tmp_path):
        with AssetResolver(temp_dir=tmp_path) as resolver:
            path = resolver.resolve(PNG_DATA_URI)
            assert path.suffix == '.png'
            assert path.read_bytes() == base64.b64decode(PNG_1X1)
            assert resolver.owned_files == [path]

        assert not path.exists()

    def test_local_path_is_used_as_is_and_never_deleted(self, source_file, tmp_path):
        with AssetResolver(temp_dir=tmp_path) as resolver:
            assert resolver.resolve(str(source_file)) == source_file
            assert resolver.owned_files == []

        assert source_file.exists()

    def test_missing_local_file(self, tmp_path):
        with pytest.raises(AssetResolutionError):
            AssetResolver(temp_dir=tmp_path).resolve(str(tmp_path / 'nope.png'))

    def test_malformed_data_uri(self):
        with pytest.raises(AssetResolutionError):
            decode_data_uri("data:image/png;base64")
        with pytest.raises(AssetResolutionError):
            decode_data_uri("data:image/png;base64,@@not-base64@@")
        with pytest.raises(AssetResolutionError):
            decode_data_uri("data:text/plain,hello")

    def test_mime_extensions(self):
        assert extension_for_mime('image/jpeg') == '.jpg'
        assert extension_for_mime('audio/mpeg') == '.mp3'

    def test_url_is_downloaded(self, tmp_path):
        response = MagicMock()
        response.iter_content.return_value = [b'ID3', b'', b'audio']
        session = MagicMock()
        session.get.return_value.__enter__.return_value = response

        with AssetResolver(temp_dir=tmp_path, timeout=5, session=session) as resolver:
            path = resolver.resolve("https://cdn.example.com/sfx/whoosh.mp3?sig=abc")
            assert path.suffix == '.mp3'
            assert path.read_bytes() == b'ID3audio'

        session.get.assert_called_once_with(
            "https://cdn.example.com/sfx/whoosh.mp3?sig=abc", stream=True, timeout=5
        )
        assert not path.exists()

    def test_own_session_is_closed_on_release(self, tmp_path):
        with patch('montage.services.asset_resolver.requests.Session') as mock_session_cls:
            session = mock_session_cls.return_value
            session.get.return_value.__enter__.return_value.iter_content.return_value = [b'PNG']

            with AssetResolver(temp_dir=tmp_path) as resolver:
                resolver.resolve("https://cdn.example.com/logo.png")

        session.close.assert_called_once()
        assert resolver.session is None

    def test_injected_session_is_left_open(self, tmp_path):
        session = MagicMock()

        with AssetResolver(temp_dir=tmp_path, session=session):
            pass

        session.close.assert_not_called()

    def test_download_failure(self, tmp_path):
        session = MagicMock()
        session.get.side_effect = requests.exceptions.ConnectionError("unreachable")
        resolver = AssetResolver(temp_dir=tmp_path, session=session)

        with pytest.raises(AssetResolutionError):
            resolver.resolve("http://example.com/logo.png")

        resolver.release()
        assert list(tmp_path.iterdir()) == []


class TestImageOverlay:
    def test_filter_graph(self):
        op = _op('overlay_image', startSec=1, endSec=3,
                 params={'imagePath': 'logo.png', 'position': 'bottom-left', 'scale': 0.25})

        graph = ImageOverlayProcessor().build_filter(op, 10)

        assert graph == (
            "[1:v]scale=w='max(1,iw*0.25)':h='max(1,ih*0.25)'[ov];"
            "[0:v][ov]overlay=10:H-h-10:enable='between(t,1,3)'[vout]"
        )

    def test_missing_image_path_is_a_parameter_error(self, tmp_path):
        with pytest.raises(ParameterError):
            ImageOverlayProcessor().process(Path('in.mp4'), tmp_path / 'out.mp4', _op('overlay_image'))

    @patch(f'{PROCESSOR_BASE}.run_ffmpeg')
    @patch(f'{PROCESSOR_BASE}.probe_media')
    def test_embedded_image_is_removed_after_render(self, mock_probe, mock_run, tmp_path):
        mock_probe.return_value = make_media_info(duration=5)
        seen = {}

        def fake_run(args, **kwargs):
            asset = Path(args[args.index('-i', 2) + 1])
            seen['asset'] = asset
            assert asset.exists()
            return []

        mock_run.side_effect = fake_run
        op = _op('overlay_image', params={'imagePath': PNG_DATA_URI})

        ImageOverlayProcessor(resolver_factory=lambda: AssetResolver(temp_dir=tmp_path)).process(
            Path('in.mp4'), tmp_path / 'out.mp4', op)

        args = mock_run.call_args[0][0]
        assert _arg_after(args, '-map') == '[vout]'
        assert '0:a?' in args
        assert not seen['asset'].exists()

    @patch(f'{PROCESSOR_BASE}.run_ffmpeg', side_effect=EngineError("overlay failed"))
    @patch(f'{PROCESSOR_BASE}.probe_media')
    def test_temp_asset_removed_on_failure(self, mock_probe, mock_run, tmp_path):
        mock_probe.return_value = make_media_info(duration=5)
        op = _op('overlay_image', params={'imagePath': PNG_DATA_URI})
        asset_dir = tmp_path / 'assets'
        asset_dir.mkdir()

        with pytest.raises(EngineError):
            ImageOverlayProcessor(resolver_factory=lambda: AssetResolver(temp_dir=asset_dir)).process(
                Path('in.mp4'), tmp_path / 'out.mp4', op)

        assert list(asset_dir.iterdir()) == []


class TestAudioOverlay:
    def setup_method(self):
        self.processor = AudioOverlayProcessor()

    def test_mix_with_existing_audio(self):
        op = _op('overlay_audio', startSec=2, endSec=5, params={'audioPath': 'sfx.mp3', 'volume': 0.5})

        graph = self.processor.build_filter(op, 10, source_has_audio=True)

        assert "adelay=2000:all=1" in graph
        assert "volume=0.5" in graph
        assert graph.endswith("[0:a][ovl]amix=inputs=2:duration=first:dropout_transition=0[aout]")

    def test_sole_track_when_source_is_silent(self):
        op = _op('overlay_audio', startSec=1, params={'audioPath': 'sfx.mp3'})

        args = self.processor.build_command(Path('in.mp4'), Path('sfx.mp3'), op,
                                            make_media_info(duration=10, audio=False))
        graph = _arg_after(args, '-filter_complex')

        assert 'amix' not in graph
        assert graph.endswith(",apad=whole_dur=10[aout]")
        assert '-shortest' not in args
        assert '-t' not in args
        assert _arg_after(args, '-c:v') == 'copy'

    def test_loop_flag_loops_the_overlay_input(self):
        op = _op('overlay_audio', params={'audioPath': 'bed.mp3', 'loop': True})

        args = self.processor.build_command(Path('in.mp4'), Path('bed.mp3'), op, make_media_info())

        loop_at = args.index('-stream_loop')
        assert args[loop_at:loop_at + 4] == ['-stream_loop', '-1', '-i', 'bed.mp3']
        assert '-shortest' not in args
        assert _arg_after(args, '-t') == '20'


class TestVideoOverlay:
    def test_clip_is_shifted_to_window_start(self):
        op = _op('overlay_video', startSec=4, endSec=9, params={'videoPath': 'pip.mp4'})

        graph = VideoOverlayProcessor().build_filter(op, 20)

        assert "setpts=PTS-STARTPTS+4/TB[ov]" in graph
        assert "overlay=W-w-10:H-h-10:eof_action=pass:enable='between(t,4,9)'[vout]" in graph

    def test_output_is_truncated_to_the_primary(self):
        op = _op('overlay_video', params={'videoPath': 'pip.mp4'})
        args = VideoOverlayProcessor().build_command(Path('in.mp4'), Path('pip.mp4'), op, make_media_info())
        assert '-shortest' in args
        assert '0:a?' in args
