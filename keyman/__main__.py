from keyman.cli.main import main


main()
