"""Tests for the ONNX model manager."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from faceentry.config import Settings
from faceentry.ml.model_manager import MODEL_REGISTRY, OnnxModelManager

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _make_settings(**overrides: object) -> Settings:
    defaults: dict[str, object] = {
        "device": "cpu",
        "accept_insightface_license": False,
        "models_dir": "/tmp/faceentry_test_models",
        "intra_op_threads": 0,
        "inter_op_threads": 1,
    }
    defaults.update(overrides)
    return Settings(**defaults)  # type: ignore[arg-type]


# ---------------------------------------------------------------------------
# Model registry tests
# ---------------------------------------------------------------------------


class TestModelRegistry:
    def test_default_model_matches_default_settings(self) -> None:
        settings = Settings()
        spec = MODEL_REGISTRY[settings.face_recognition_model]
        assert spec.embedding_dim == settings.embedding_dim

    def test_insightface_flag_correct(self) -> None:
        assert MODEL_REGISTRY["w600k_r50"].insightface is True
        assert MODEL_REGISTRY["auraface_v1"].insightface is False

    def test_all_models_take_112_crops(self) -> None:
        assert {spec.input_size for spec in MODEL_REGISTRY.values()} == {112}


# ---------------------------------------------------------------------------
# OnnxModelManager tests
# ---------------------------------------------------------------------------


class TestOnnxModelManager:
    @patch("faceentry.ml.model_manager.hf_hub_download")
    def test_ensure_downloaded_calls_hf_hub_download(self, mock_download: MagicMock, tmp_path: Path) -> None:
        mock_download.return_value = str(tmp_path / "glintr100.onnx")
        mgr = OnnxModelManager(_make_settings(models_dir=str(tmp_path)))

        path = mgr.ensure_downloaded("auraface_v1")

        mock_download.assert_called_once_with(
            repo_id="fal/AuraFace-v1",
            filename="glintr100.onnx",
            subfolder=None,
            local_dir=str(tmp_path),
        )
        assert path == tmp_path / "glintr100.onnx"

    @patch("faceentry.ml.model_manager.hf_hub_download")
    def test_ensure_downloaded_skips_existing(self, mock_download: MagicMock, tmp_path: Path) -> None:
        model_file = tmp_path / "glintr100.onnx"
        model_file.touch()

        mgr = OnnxModelManager(_make_settings(models_dir=str(tmp_path)))
        mgr._model_paths["auraface_v1"] = model_file

        path = mgr.ensure_downloaded("auraface_v1")

        mock_download.assert_not_called()
        assert path == model_file

    def test_insightface_blocked_without_license(self) -> None:
        mgr = OnnxModelManager(_make_settings(accept_insightface_license=False))

        with pytest.raises(RuntimeError, match="FACEENTRY_ACCEPT_INSIGHTFACE_LICENSE"):
            mgr.ensure_downloaded("w600k_r50")

    @patch("faceentry.ml.model_manager.hf_hub_download")
    def test_insightface_allowed_with_license(self, mock_download: MagicMock, tmp_path: Path) -> None:
        mock_download.return_value = str(tmp_path / "models/buffalo_l/w600k_r50.onnx")
        mgr = OnnxModelManager(_make_settings(accept_insightface_license=True, models_dir=str(tmp_path)))

        path = mgr.ensure_downloaded("w600k_r50")

        assert path == tmp_path / "models/buffalo_l/w600k_r50.onnx"
        mock_download.assert_called_once()

    @patch("faceentry.ml.model_manager.InferenceSession")
    @patch("faceentry.ml.model_manager.hf_hub_download")
    def test_get_session_creates_and_caches(
        self, mock_download: MagicMock, mock_session_cls: MagicMock, tmp_path: Path
    ) -> None:
        mock_download.return_value = str(tmp_path / "glintr100.onnx")
        mock_session = MagicMock()
        mock_session_cls.return_value = mock_session
        mgr = OnnxModelManager(_make_settings(models_dir=str(tmp_path)))

        session1 = mgr.get_session("auraface_v1")
        session2 = mgr.get_session("auraface_v1")

        assert session1 is mock_session
        assert session2 is mock_session
        mock_session_cls.assert_called_once()
        assert mgr.get_loaded_models() == ["auraface_v1"]

    @patch("faceentry.ml.model_manager.InferenceSession")
    @patch("faceentry.ml.model_manager.hf_hub_download")
    def test_shutdown_clears_sessions(
        self, mock_download: MagicMock, mock_session_cls: MagicMock, tmp_path: Path
    ) -> None:
        mock_download.return_value = str(tmp_path / "glintr100.onnx")
        mgr = OnnxModelManager(_make_settings(models_dir=str(tmp_path)))
        mgr.get_session("auraface_v1")

        mgr.shutdown()
        assert mgr.get_loaded_models() == []

    def test_provider_building_cpu(self) -> None:
        mgr = OnnxModelManager(_make_settings(device="cpu"))
        assert mgr._providers == ["CPUExecutionProvider"]

    def test_provider_building_cuda(self) -> None:
        mgr = OnnxModelManager(_make_settings(device="cuda"))
        assert len(mgr._providers) == 2
        provider_name, provider_opts = mgr._providers[0]  # type: ignore[misc]
        assert provider_name == "CUDAExecutionProvider"
        assert provider_opts["device_id"] == 0
        assert mgr._providers[1] == "CPUExecutionProvider"

    def test_unknown_model_raises_keyerror(self) -> None:
        mgr = OnnxModelManager(_make_settings())
        with pytest.raises(KeyError, match="Unknown model"):
            mgr.ensure_downloaded("totally_fake_model")

    def test_constructor_does_not_touch_disk(self, tmp_path: Path) -> None:
        OnnxModelManager(_make_settings(models_dir=str(tmp_path / "models")))
        assert not (tmp_path / "models").exists()
