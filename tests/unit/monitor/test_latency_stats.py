from latency_monitor.monitor import LatencyStats


class TestLatencyStats:
    def test_new_stats_are_empty(self):
        stats = LatencyStats()

        assert stats.sample_count == 0
        assert stats.cumulative_latency == 0
        assert stats.average_latency == 0.0

    def test_update_tracks_running_mean(self):
        stats = LatencyStats()

        stats.update(100)
        assert stats.average_latency == 100.0

        stats.update(200)
        assert stats.average_latency == 150.0

        stats.update(300)
        assert stats.average_latency == 200.0
        assert stats.sample_count == 3
        assert stats.cumulative_latency == 600

    def test_average_matches_batch_mean(self):
        """Running mean over uneven samples equals the mean of all samples."""
        samples = [17, 3, 250, 0, 41, 41, 9]
        stats = LatencyStats()

        for sample in samples:
            stats.update(sample)

        assert stats.sample_count == len(samples)
        assert stats.average_latency == sum(samples) / len(samples)

    def test_average_keeps_fractional_part(self):
        stats = LatencyStats()

        stats.update(1)
        stats.update(2)

        assert stats.average_latency == 1.5
        assert f"{stats.average_latency:.2f}" == "1.50"

    def test_sample_count_only_grows(self):
        stats = LatencyStats()
        counts = []

        for sample in (5, 0, 12):
            stats.update(sample)
            counts.append(stats.sample_count)

        assert counts == [1, 2, 3]
