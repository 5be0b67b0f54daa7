import pytest
import yaml

from tbsim.argparser import ArgumentError
from tbsim.cli import help_text, main, parse_command_line, read_concentrations
from tbsim.model import DEFAULT_INTRACELLULAR_VOLUME, DEFAULT_TARGET_MOLECULE_COUNT
from tbsim.report import header_line
from tbsim.simulation import DEFAULT_SIMULATION_STEP_SIZE, Stepper


@pytest.fixture
def conc_file(tmp_path):
    path = tmp_path / "conc.txt"
    path.write_text("100 100 100\n")
    return path


def test_defaults():
    config = parse_command_line(["tbsim"])
    assert config.stepper is Stepper.RK2
    assert config.model.target_molecule_count == DEFAULT_TARGET_MOLECULE_COUNT
    assert config.model.replication_threshold == config.model.killing_threshold - 1
    assert config.show_help is False


def test_killing_threshold_sets_replication():
    config = parse_command_line(["tbsim", "-n", "10", "-k", "4"])
    assert config.model.killing_threshold == 4
    assert config.model.replication_threshold == config.model.killing_threshold - 1


def test_explicit_replication_threshold_kept():
    config = parse_command_line(["tbsim", "-r", "2", "-k", "4"])
    assert config.model.replication_threshold == 2


def test_time_option_sets_end_and_step():
    config = parse_command_line(["tbsim", "-t", "7200:1800"])
    assert config.simulation.end_time == 7200.0
    assert config.simulation.step_size == 1800.0
    assert config.model.steptime == 1800.0


def test_time_option_without_step_keeps_default_step():
    config = parse_command_line(["tbsim", "--time=7200"])
    assert config.simulation.end_time == 7200.0
    assert config.simulation.step_size == DEFAULT_SIMULATION_STEP_SIZE


def test_unparsable_number_keeps_default():
    config = parse_command_line(["tbsim", "-V", "abc"])
    assert config.model.intracellular_volume == DEFAULT_INTRACELLULAR_VOLUME


def test_leading_number_is_used():
    config = parse_command_line(["tbsim", "--targetMoleculeCount=12abc"])
    assert config.model.target_molecule_count == 12


@pytest.mark.parametrize(
    "name, expected",
    [("rk4", Stepper.RK4), ("msbdf", Stepper.MSBDF), ("bogus", Stepper.RK2)],
)
def test_stepping_function(name, expected):
    assert parse_command_line(["tbsim", "-S", name]).stepper is expected


def test_files_and_flags():
    config = parse_command_line(["tbsim", "-v", "-i", "in.txt", "-m", "m.txt", "-o", "o.yaml"])
    assert config.verbose is True
    assert (config.input_file, config.matrix_file, config.output_file) == ("in.txt", "m.txt", "o.yaml")


def test_help_flag():
    assert parse_command_line(["tbsim", "-h"]).show_help is True


def test_unknown_option_raises():
    with pytest.raises(ArgumentError):
        parse_command_line(["tbsim", "--bogus"])


def test_missing_argument_raises():
    with pytest.raises(ArgumentError):
        parse_command_line(["tbsim", "-n"])


def test_zero_step_raises():
    with pytest.raises(ArgumentError):
        parse_command_line(["tbsim", "-t", "100:0"])


def test_read_concentrations_scales(tmp_path):
    path = tmp_path / "c.txt"
    path.write_text("1 2\n3 4\n")
    values = read_concentrations(path, 3, 1e-15, 6.02e5)
    assert list(values) == pytest.approx([1.0, 2.0, 3.0])


def test_read_concentrations_too_few(tmp_path):
    path = tmp_path / "c.txt"
    path.write_text("1 2\n")
    with pytest.raises(ValueError):
        read_concentrations(path, 3, 1e-15, 555.5)


def test_read_concentrations_not_numeric(tmp_path):
    path = tmp_path / "c.txt"
    path.write_text("1 x 3\n")
    with pytest.raises(ValueError):
        read_concentrations(path, 3, 1e-15, 555.5)


def test_help_text_mentions_options():
    text = help_text("prog")
    assert "usage: prog [options]" in text
    assert "--inputFile" in text
    assert "--steppingFunction" in text


def test_main_help(capsys):
    assert main(["-h"]) == 0
    assert "usage:" in capsys.readouterr().out


def test_main_bad_option(capsys):
    assert main(["--bogus"]) == 1
    err = capsys.readouterr().err
    assert "unrecognized option '--bogus'" in err
    assert "--help" in err


def test_main_missing_input_file(tmp_path, capsys):
    assert main(["-i", str(tmp_path / "missing.txt")]) == 1
    assert capsys.readouterr().err


def test_main_bad_parameters(conc_file, capsys):
    code = main(["-n", "4", "-k", "2", "-K", "2", "-t", "7200:3600", "-i", str(conc_file)])
    assert code == 1
    err = capsys.readouterr().err
    assert "Maximum killing rate was out of range" in err
    assert "Failure: Bad parameters supplied" in err


def test_main_full_run(tmp_path, conc_file, capsys):
    matrix = tmp_path / "matrix.txt"
    report = tmp_path / "out.yaml"
    code = main(
        [
            "-n", "4", "-k", "2", "-t", "7200:3600", "-p", "500",
            "-i", str(conc_file), "-m", str(matrix), "-o", str(report),
        ]
    )
    assert code == 0
    assert header_line(4) in capsys.readouterr().out

    lines = matrix.read_text().splitlines()
    assert len(lines) == 3
    assert lines[-1] == header_line(4)
    columns = len(header_line(4).split())
    assert all(len(line.split()) == columns for line in lines[:-1])
    first, second = (line.split() for line in lines[:-1])
    assert float(first[5]) == 0.0
    assert float(second[5]) == 3600.0
    assert float(first[6]) == 500.0

    loaded = yaml.safe_load(report.read_text())
    assert loaded["simulation-parameters"]["starting-population"] == 500


def test_main_verbose_summary(conc_file, capsys):
    code = main(["-v", "-n", "4", "-k", "2", "-t", "7200:3600", "-i", str(conc_file)])
    assert code == 0
    out = capsys.readouterr().out
    assert "Target molecules        \t4" in out
    assert "Final population" in out