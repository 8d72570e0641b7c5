from unittest.mock import patch

import pandas as pd
import pytest

from eth_txfuzz_core import config as core_config
from eth_txfuzz_core.errors import NodeConnectionError, SubmissionError
from scenarios.livefuzzer_scenario import build_parser, main, run_spam_loop


class TestRunSpamLoop:
    @patch('scenarios.livefuzzer_scenario.time.sleep', return_value=None)
    def test_bounded_rounds(self, mock_sleep, make_config, fake_node, pool, faucet):
        config = make_config(n=2)
        completed = run_spam_loop(config, _count_worker, airdrop_value=1, rounds=2)

        assert completed == 2
        # Two airdrops of one transfer per account, no spam transactions from the counting worker.
        assert len(fake_node.submissions_from(faucet.address)) == 2 * len(pool)
        backoffs = [c for c in mock_sleep.call_args_list if c.args == (core_config.SPAM_LOOP_BACKOFF_SECONDS,)]
        assert len(backoffs) == 1

    @patch('scenarios.livefuzzer_scenario.time.sleep', return_value=None)
    def test_unstuck_runs_first_and_errors_are_logged(self, mock_sleep, make_config, fake_node, pool):
        address = pool[0].address
        fake_node.pending[address] = 1
        fake_node.mine = False # unstuck times out, airdrop and spam still run

        completed = run_spam_loop(make_config(n=1), _count_worker, airdrop_value=1, rounds=1)
        assert completed == 1
        assert fake_node.submissions[0].sender == address
        assert fake_node.submissions[0].nonce == 0

    @patch('scenarios.livefuzzer_scenario.time.sleep', return_value=None)
    @patch('scenarios.livefuzzer_scenario.unstuck', return_value=[])
    def test_unstuck_runs_before_every_round(self, mock_unstuck, mock_sleep, make_config):
        config = make_config(n=1)
        assert run_spam_loop(config, _count_worker, airdrop_value=1, rounds=3) == 3
        assert mock_unstuck.call_count == 3
        mock_unstuck.assert_called_with(config)

    @patch('scenarios.livefuzzer_scenario.time.sleep', return_value=None)
    def test_account_stuck_after_a_round_is_repaired_next_round(self, mock_sleep, make_config, fake_node, pool):
        address = pool[0].address
        stuck_after_first_round = []

        def worker(config, account, randomness, result):
            if account.address == address and not stuck_after_first_round:
                fake_node.pending[address] = fake_node.latest.get(address, 0) + 4
                stuck_after_first_round.append(True)
            result.sent = 1

        run_spam_loop(make_config(n=1), worker, airdrop_value=1, rounds=2)
        self_transfers = [s for s in fake_node.submissions_from(address) if s.transaction.to == address]
        assert len(self_transfers) == 1

    def test_failed_airdrop_ends_loop(self, make_config, fake_node, faucet):
        fake_node.fail_senders.add(faucet.address)
        with pytest.raises(SubmissionError):
            run_spam_loop(make_config(), _count_worker, airdrop_value=1, rounds=3)
        assert fake_node.submissions == []


def _count_worker(config, account, randomness, result):
    result.sent = 1


class TestMain:
    def test_parser_accepts_spam_options(self):
        args = build_parser().parse_args(['spam', '--txcount', '3', '--rounds', '1', '--no-al', '--seed', '9'])
        assert (args.command, args.txcount, args.rounds, args.no_al, args.seed) == ('spam', 3, 1, True, 9)

    @patch('scenarios.livefuzzer_scenario.configure_logging')
    def test_create_writes_key_file(self, mock_logging, tmp_path, capsys):
        output = tmp_path / "keys.csv"
        assert main(['create', '--count', '2', '--output', str(output)]) == 0

        key_data_frame = pd.read_csv(output, dtype=str)
        assert list(key_data_frame.columns) == ['pub_key', 'priv_key']
        assert len(key_data_frame) == 2
        assert key_data_frame['pub_key'][0] in capsys.readouterr().out

    @patch('scenarios.livefuzzer_scenario.Web3NodeClient')
    @patch('scenarios.livefuzzer_scenario.configure_logging')
    def test_connection_failure_exits_nonzero(self, mock_logging, mock_client_cls):
        mock_client_cls.side_effect = NodeConnectionError("Failed to connect")
        assert main(['unstuck', '--rpc', 'http://127.0.0.1:1']) == 1
