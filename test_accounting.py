import math

from accounting import PacketLossAccountant, loss_rate


def test_aggregate_loss_rate():
    accountant = PacketLossAccountant()
    accountant.record_sent(1000)
    accountant.record_received(950)
    assert accountant.loss_rate() == 0.05


def test_counters_increment_per_callback():
    accountant = PacketLossAccountant()
    for _ in range(3):
        accountant.record_sent()
    accountant.record_received()
    assert accountant.packets_sent == 3
    assert accountant.packets_received == 1


def test_nothing_sent_reports_nan():
    assert math.isnan(loss_rate(0, 0))
    assert math.isnan(PacketLossAccountant().loss_rate())


def test_full_delivery_and_full_loss():
    assert loss_rate(10, 10) == 0.0
    assert loss_rate(10, 0) == 1.0


if __name__ == "__main__":
    test_aggregate_loss_rate()
    print("Accounting tests passed")
