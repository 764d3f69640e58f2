"""
End-to-end tests for the CLI flow
"""

import pytest
from unittest.mock import patch

from conftest import FakeInspector, FakeSurface, LEGACY_OUTPUT, make_vm
from parallels_ssh.cli import create_parser, main, resolve_username, run
from parallels_ssh.config import AdapterDescriptor, InterfaceRecord, ResolvedAddress
from parallels_ssh.settings import Settings
from parallels_ssh.tui import Event, EventType, Key

ENTER = Event.of(Key.ENTER)


def parse(*argv: str, settings: Settings | None = None):
    return create_parser(settings or Settings()).parse_args(list(argv))


def surfaces(*items: FakeSurface):
    """Surface factory handing out the given surfaces in order"""
    queue = list(items)
    return lambda: queue.pop(0)


@pytest.fixture
def bridged_inspector() -> FakeInspector:
    """One running Linux VM exposing eth0 through ifconfig"""
    vm = make_vm(adapters=[AdapterDescriptor("net0", True, "001c42c45c24", "bridged")])
    return FakeInspector([vm], {vm.id: {"ifconfig": LEGACY_OUTPUT}})


class TestParser:
    """Test CLI flags"""

    def test_defaults(self):
        args = parse()
        assert (args.port, args.user, args.ask) == (22, "root", False)

    def test_short_flags(self):
        args = parse("-p", "2222", "-l", "admin", "-a")
        assert (args.port, args.user, args.ask) == (2222, "admin", True)

    def test_user_alias(self):
        assert parse("-u", "bob").user == "bob"
        assert parse("--user", "eve").user == "eve"

    def test_defaults_from_settings(self):
        args = parse(settings=Settings(user="parallels", port=2200, ask=True))
        assert (args.port, args.user, args.ask) == (2200, "parallels", True)

    def test_help_exits(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            parse("-h")
        assert exc_info.value.code == 0
        assert "--port" in capsys.readouterr().out


class TestRun:
    """Test the discovery, selection and login flow"""

    @patch('parallels_ssh.cli.ssh_login', return_value=0)
    def test_select_and_login(self, mock_login, bridged_inspector):
        """Test the single resolved address is offered and used"""
        list_surface = FakeSurface([ENTER])

        code = run(parse(), Settings(), bridged_inspector, surfaces(list_surface))

        assert code == 0
        address, user, port = mock_login.call_args[0]
        assert address.vm.name == "ubuntu"
        assert address.ip == "10.211.55.5"
        assert address.adapter_type == "bridged"
        assert (user, port) == ("root", 22)
        assert any(address.display() in row for row in list_surface.frames[0])

    @patch('parallels_ssh.cli.ssh_login')
    def test_no_vm(self, mock_login, capsys):
        """Test empty inventory prints a notice and stops"""
        code = run(parse(), Settings(), FakeInspector([], {}), surfaces())

        assert code == 0
        assert "no available(running) vm found!" in capsys.readouterr().out
        mock_login.assert_not_called()

    @patch('parallels_ssh.cli.ssh_login')
    def test_only_stopped_vms(self, mock_login, capsys):
        vm = make_vm(state="stopped")
        run(parse(), Settings(), FakeInspector([vm], {}), surfaces())
        assert "no available(running) vm found!" in capsys.readouterr().out
        mock_login.assert_not_called()

    @patch('parallels_ssh.cli.ssh_login')
    def test_interrupt(self, mock_login, bridged_inspector, capsys):
        """Test Ctrl+C in the list prints a notice and skips login"""
        code = run(parse(), Settings(), bridged_inspector, surfaces(FakeSurface([Event.of(Key.CTRL_C)])))

        assert code == 130
        assert "cancel login to vm" in capsys.readouterr().out
        mock_login.assert_not_called()

    @patch('parallels_ssh.cli.ssh_login')
    def test_cancel(self, mock_login, bridged_inspector, capsys):
        """Test Esc quietly skips login"""
        code = run(parse(), Settings(), bridged_inspector, surfaces(FakeSurface([Event.of(Key.ESC)])))

        assert code == 0
        assert "cancel login to vm" not in capsys.readouterr().out
        mock_login.assert_not_called()

    @patch('parallels_ssh.cli.ssh_login')
    def test_surface_fault(self, mock_login, bridged_inspector):
        """Test unavailable terminal aborts without login"""
        code = run(parse(), Settings(), bridged_inspector, surfaces(FakeSurface(fail_on_enter=True)))

        assert code == 1
        mock_login.assert_not_called()

    @patch('parallels_ssh.cli.ssh_login', return_value=0)
    def test_ask_prompt_fails_falls_back(self, mock_login, bridged_inspector):
        """Test --ask falls back to --user when the prompt cannot start"""
        factory = surfaces(FakeSurface([ENTER]), FakeSurface(fail_on_enter=True))

        run(parse("--ask", "-u", "admin", "-p", "2022"), Settings(), bridged_inspector, factory)

        _, user, port = mock_login.call_args[0]
        assert (user, port) == ("admin", 2022)

    @patch('parallels_ssh.cli.ssh_login', return_value=0)
    def test_ask_prompt_fails_default_user(self, mock_login, bridged_inspector):
        factory = surfaces(FakeSurface([ENTER]), FakeSurface(fail_on_enter=True))
        run(parse("--ask"), Settings(), bridged_inspector, factory)
        assert mock_login.call_args[0][1] == "root"

    @patch('parallels_ssh.cli.ssh_login', return_value=0)
    def test_ask_prompt_entered(self, mock_login, bridged_inspector):
        prompt = FakeSurface([Event.char(c) for c in "parallels"] + [ENTER])
        run(parse("-a"), Settings(), bridged_inspector, surfaces(FakeSurface([ENTER]), prompt))
        assert mock_login.call_args[0][1] == "parallels"


class TestResolveUsername:
    """Test username selection"""

    def make_address(self) -> ResolvedAddress:
        return ResolvedAddress(
            vm=make_vm(), interface=InterfaceRecord(name="eth0", ip="10.0.0.2"), adapter_key="net0"
        )

    def test_without_ask(self):
        assert resolve_username(self.make_address(), parse("-l", "bob"), surfaces()) == "bob"

    @pytest.mark.parametrize("event", [Event.of(Key.ESC), Event.of(Key.CTRL_C), Event(EventType.ERROR)])
    def test_prompt_aborted(self, event):
        """Test cancelled or failed prompt uses --user"""
        factory = surfaces(FakeSurface([event]))
        assert resolve_username(self.make_address(), parse("-a", "-l", "bob"), factory) == "bob"

    def test_empty_entry(self):
        factory = surfaces(FakeSurface([ENTER]))
        assert resolve_username(self.make_address(), parse("-a", "-l", "bob"), factory) == "bob"


class TestMain:
    """Test the entry point"""

    @patch('parallels_ssh.cli.load_settings', return_value=Settings())
    @patch('parallels_ssh.cli.ParallelsInspector')
    def test_no_vm(self, mock_inspector, mock_settings, capsys):
        mock_inspector.return_value = FakeInspector([], {})
        assert main([]) == 0
        assert "no available(running) vm found!" in capsys.readouterr().out

    @patch('parallels_ssh.cli.load_settings', return_value=Settings(prlctl="/opt/prlctl", timeout=5))
    @patch('parallels_ssh.cli.ParallelsInspector')
    def test_inspector_from_settings(self, mock_inspector, mock_settings):
        mock_inspector.return_value = FakeInspector([], {})
        main([])
        mock_inspector.assert_called_once_with("/opt/prlctl", 5)

    @patch('parallels_ssh.cli.load_settings', return_value=Settings())
    @patch('parallels_ssh.cli.run', side_effect=RuntimeError("boom"))
    def test_unexpected_error(self, mock_run, mock_settings):
        assert main([]) == 1

    @patch('parallels_ssh.cli.load_settings', return_value=Settings())
    @patch('parallels_ssh.cli.run', side_effect=KeyboardInterrupt)
    def test_keyboard_interrupt(self, mock_run, mock_settings, capsys):
        assert main([]) == 130
        assert "cancel login to vm" in capsys.readouterr().out

    @patch('parallels_ssh.cli.load_settings', return_value=Settings())
    def test_show_config(self, mock_settings, capsys):
        assert main(["--show-config"]) == 0
        out = capsys.readouterr().out
        assert "Current Settings" in out
        assert "root" in out
