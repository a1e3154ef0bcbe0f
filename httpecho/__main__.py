from httpecho.cli import main


main()
