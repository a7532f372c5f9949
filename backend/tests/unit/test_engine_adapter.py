"""Tests for the ffmpeg/ffprobe adapter, with the subprocess layer mocked out."""
import io
import json
import subprocess
from unittest.mock import MagicMock, patch

import pytest

from montage.core.config import get_settings
from montage.editing.core.processor import EngineError
from montage.editing.utils.ffmpeg_utils import build_ffmpeg_command, parse_out_time, run_ffmpeg
from montage.editing.utils.video_utils import copy_media, format_sec, parse_probe_output, probe_media


def make_process(lines, returncode=0):
    process = MagicMock()
    process.stdout = io.StringIO(''.join(f"{line}\n" for line in lines))
    process.wait.return_value = returncode
    process.poll.return_value = returncode
    return process


class TestRunFFmpeg:
    def test_command_prefix(self):
        cmd = build_ffmpeg_command(['-i', 'in.mp4', 'out.mp4'])
        assert cmd[0] == get_settings().ffmpeg_binary
        assert cmd[1:7] == ['-hide_banner', '-nostdin', '-y', '-progress', 'pipe:1', '-nostats']
        assert cmd[-3:] == ['-i', 'in.mp4', 'out.mp4']

    def test_parse_out_time(self):
        assert parse_out_time("out_time_us=2500000") == 2.5
        assert parse_out_time("out_time_ms=1000000") == 1.0
        assert parse_out_time("out_time=00:00:02.500000") is None
        assert parse_out_time("frame=10") is None

    @patch('montage.editing.utils.ffmpeg_utils.subprocess.Popen')
    def test_progress_and_diagnostics_are_separated(self, mock_popen):
        mock_popen.return_value = make_process([
            "Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'in.mp4':",
            "frame=10",
            "out_time_us=2500000",
            "progress=continue",
            "[silencedetect @ 0x55] silence_start: 1.0",
            "out_time_us=5000000",
            "out_time_us=4000000",
            "progress=end",
        ])
        percents, lines = [], []

        tail = run_ffmpeg(['-i', 'in.mp4', 'out.mp4'], duration=10,
                          progress_callback=percents.append, line_callback=lines.append)

        assert percents == [25.0, 50.0, 100.0]
        assert lines == [
            "Input #0, mov,mp4,m4a,3gp,3g2,mj2, from 'in.mp4':",
            "[silencedetect @ 0x55] silence_start: 1.0",
        ]
        assert tail == lines

    @patch('montage.editing.utils.ffmpeg_utils.subprocess.Popen')
    def test_progress_is_capped_below_100_until_exit(self, mock_popen):
        mock_popen.return_value = make_process(["out_time_us=12000000"], returncode=0)
        percents = []

        run_ffmpeg(['out.mp4'], duration=10, progress_callback=percents.append)

        assert percents == [99.0, 100.0]

    @patch('montage.editing.utils.ffmpeg_utils.subprocess.Popen')
    def test_non_zero_exit_raises_with_output_tail(self, mock_popen):
        mock_popen.return_value = make_process(
            ["Error opening input file missing.mp4.", "Error opening input files: No such file"],
            returncode=1,
        )
        percents = []

        with pytest.raises(EngineError) as excinfo:
            run_ffmpeg(['-i', 'missing.mp4', 'out.mp4'], duration=5, progress_callback=percents.append)

        assert excinfo.value.returncode == 1
        assert "No such file" in str(excinfo.value)
        assert "Error opening input file missing.mp4." in excinfo.value.output_tail
        assert 100.0 not in percents

    @patch('montage.editing.utils.ffmpeg_utils.subprocess.Popen', side_effect=FileNotFoundError("ffmpeg"))
    def test_missing_binary_raises_engine_error(self, mock_popen):
        with pytest.raises(EngineError):
            run_ffmpeg(['out.mp4'])


class TestProbe:
    RAW = {
        'format': {'duration': '12.480000'},
        'streams': [
            {'index': 0, 'codec_type': 'video', 'codec_name': 'h264', 'width': 1920, 'height': 1080},
            {'index': 1, 'codec_type': 'audio', 'codec_name': 'aac', 'sample_rate': '48000', 'channels': 2},
        ],
    }

    def test_parse_probe_output(self):
        info = parse_probe_output(self.RAW)

        assert info.duration == pytest.approx(12.48)
        assert (info.width, info.height) == (1920, 1080)
        assert info.has_audio
        assert info.has_video

    def test_still_image_uses_stream_duration(self):
        info = parse_probe_output({
            'format': {},
            'streams': [{'codec_type': 'video', 'width': 1, 'height': 1, 'duration': '0.040000'}],
        })

        assert info.duration == pytest.approx(0.04)
        assert not info.has_audio

    @patch('montage.editing.utils.video_utils.subprocess.run')
    def test_probe_media(self, mock_run):
        mock_run.return_value = MagicMock(stdout=json.dumps(self.RAW))

        info = probe_media('clip.mp4')

        cmd = mock_run.call_args[0][0]
        assert cmd[0] == get_settings().ffprobe_binary
        assert cmd[-1] == 'clip.mp4'
        assert info.duration == pytest.approx(12.48)

    @patch('montage.editing.utils.video_utils.subprocess.run')
    def test_probe_failure_raises_engine_error(self, mock_run):
        mock_run.side_effect = subprocess.CalledProcessError(1, ['ffprobe'], stderr='clip.mp4: Invalid data')

        with pytest.raises(EngineError) as excinfo:
            probe_media('clip.mp4')

        assert 'Invalid data' in str(excinfo.value)


def test_copy_media_is_byte_for_byte(tmp_path):
    src = tmp_path / 'a.mp4'
    src.write_bytes(b'\x00\x01payload')

    dst = copy_media(src, tmp_path / 'b.mp4')

    assert dst.read_bytes() == b'\x00\x01payload'


@pytest.mark.parametrize("seconds,expected", [(0, "00:00"), (5.9, "00:05"), (65, "01:05"), (-3, "00:00")])
def test_format_sec(seconds, expected):
    assert format_sec(seconds) == expected
