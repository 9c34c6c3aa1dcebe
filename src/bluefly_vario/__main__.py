from bluefly_vario.cli import main

main()
