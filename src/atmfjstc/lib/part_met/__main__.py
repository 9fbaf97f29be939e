from atmfjstc.lib.part_met.cli import main


main()
